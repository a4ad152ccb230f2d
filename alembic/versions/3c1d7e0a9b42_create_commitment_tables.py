"""create_commitment_tables

Creates the relational storage used by the remote backend: one header per
user, the commitments themselves and their 1:1 budget items.

Revision ID: 3c1d7e0a9b42
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3c1d7e0a9b42'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'headers',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column('cumulative_reason_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('budget_year', sa.String(10), nullable=False, server_default=''),
        sa.Column('budget_user_id', sa.String(50), nullable=False, server_default=''),
        sa.Column('currency_code', sa.String(10), nullable=False, server_default=''),
        sa.Column('treasury', sa.String(50), nullable=False, server_default=''),
        *_timestamps(),
    )
    op.create_index('ix_headers_user_id', 'headers', ['user_id'], unique=True)

    op.create_table(
        'records',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('user_id', sa.String(64), nullable=False),
        sa.Column(
            'header_id',
            sa.Integer(),
            sa.ForeignKey('headers.id', ondelete='SET NULL'),
            nullable=True,
        ),
        sa.Column('sequence_number', sa.Integer(), nullable=True),
        sa.Column('reason_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('external_id', sa.String(200), nullable=False, server_default=''),
        sa.Column('recipient', sa.String(300), nullable=False, server_default=''),
        sa.Column('recipient_place', sa.String(200), nullable=False, server_default=''),
        sa.Column('account_number', sa.String(100), nullable=False, server_default=''),
        sa.Column('invoice_number', sa.String(100), nullable=False, server_default=''),
        sa.Column('invoice_type', sa.String(100), nullable=False, server_default=''),
        sa.Column('invoice_date', sa.String(20), nullable=False, server_default=''),
        sa.Column('due_date', sa.String(20), nullable=False, server_default=''),
        sa.Column('contract_number', sa.String(100), nullable=False, server_default=''),
        sa.Column('payment_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('credit_model', sa.String(50), nullable=False, server_default=''),
        sa.Column('credit_reference_number', sa.String(100), nullable=False, server_default=''),
        sa.Column('payment_basis', sa.String(500), nullable=False, server_default=''),
        *_timestamps(),
    )
    op.create_index('ix_records_user_id', 'records', ['user_id'])

    op.create_table(
        'record_items',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            'record_id',
            sa.String(64),
            sa.ForeignKey('records.id', ondelete='CASCADE'),
            nullable=False,
            unique=True,
        ),
        sa.Column('budget_user_id', sa.String(50), nullable=False, server_default=''),
        sa.Column('program_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('project_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('economic_classification_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('source_of_funding_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('function_code', sa.String(50), nullable=False, server_default=''),
        sa.Column('amount', sa.Numeric(15, 2), nullable=False, server_default='0'),
        sa.Column('recording_account', sa.String(100), nullable=False, server_default=''),
        sa.Column('expected_payment_date', sa.String(20), nullable=False, server_default=''),
        sa.Column('urgent_payment', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('posting_account', sa.String(100), nullable=False, server_default=''),
        *_timestamps(),
    )


def downgrade() -> None:
    op.drop_table('record_items')
    op.drop_index('ix_records_user_id', table_name='records')
    op.drop_table('records')
    op.drop_index('ix_headers_user_id', table_name='headers')
    op.drop_table('headers')
