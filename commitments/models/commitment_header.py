"""CommitmentHeader model: batch header, one row per user (``headers`` table)."""

from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from commitments.database import Base


class CommitmentHeader(Base):
    """Header attributes written on the ``<commitments>`` root element.

    The unique constraint on ``user_id`` enforces the one-header-per-user
    invariant; saves are upserts on that column.

    Attributes:
        id: Primary key.
        user_id: Opaque identifier of the owning user account.
        cumulative_reason_code: Reason code applying to the whole batch.
        budget_year: Budget year as text.
        budget_user_id: Submitting budget user.
        currency_code: Currency code, e.g. "RSD".
        treasury: Treasury branch code.
        created_at: Row creation timestamp.
        updated_at: Last modification timestamp.
    """

    __tablename__ = "headers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), unique=True, nullable=False, index=True)
    cumulative_reason_code = Column(String(50), nullable=False, default="")
    budget_year = Column(String(10), nullable=False, default="")
    budget_user_id = Column(String(50), nullable=False, default="")
    currency_code = Column(String(10), nullable=False, default="")
    treasury = Column(String(50), nullable=False, default="")
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    commitments = relationship("Commitment", back_populates="header", lazy="select")
