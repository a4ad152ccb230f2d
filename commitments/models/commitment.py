"""Commitment model: one invoice / payment obligation (``records`` table)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from commitments.database import Base


class Commitment(Base):
    """Commitment row owned by a user and linked to that user's header.

    The budget classification lives in the 1:1 ``CommitmentItem`` child.
    ``sequence_number`` is nullable and not unique: integrity is audited by
    ``services.sequence_service`` rather than enforced by a constraint.

    Attributes:
        id: Primary key; the record id used throughout the API.
        user_id: Opaque identifier of the owning user account.
        header_id: FK to the user's ``headers`` row (nullable until saved).
        sequence_number: Per-user ordinal.
        reason_code .. payment_basis: Attributes exported on ``<commitment>``.
        created_at: Creation timestamp; drives renumbering order.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "records"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), nullable=False, index=True)
    header_id = Column(Integer, ForeignKey("headers.id", ondelete="SET NULL"), nullable=True)
    sequence_number = Column(Integer, nullable=True)
    reason_code = Column(String(50), nullable=False, default="")
    external_id = Column(String(200), nullable=False, default="")
    recipient = Column(String(300), nullable=False, default="")
    recipient_place = Column(String(200), nullable=False, default="")
    account_number = Column(String(100), nullable=False, default="")
    invoice_number = Column(String(100), nullable=False, default="")
    invoice_type = Column(String(100), nullable=False, default="")
    invoice_date = Column(String(20), nullable=False, default="")
    due_date = Column(String(20), nullable=False, default="")
    contract_number = Column(String(100), nullable=False, default="")
    payment_code = Column(String(50), nullable=False, default="")
    credit_model = Column(String(50), nullable=False, default="")
    credit_reference_number = Column(String(100), nullable=False, default="")
    payment_basis = Column(String(500), nullable=False, default="")
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    header = relationship("CommitmentHeader", back_populates="commitments", lazy="select")
    items = relationship(
        "CommitmentItem",
        back_populates="commitment",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
