"""CommitmentItem model: budget classification of a commitment (``record_items``)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from commitments.database import Base


class CommitmentItem(Base):
    """Item sub-record; exactly one per ``Commitment``.

    The unique constraint on ``record_id`` enforces the 1:1 relationship.
    It is always inserted after its parent row.
    """

    __tablename__ = "record_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    record_id = Column(
        String(64),
        ForeignKey("records.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    budget_user_id = Column(String(50), nullable=False, default="")
    program_code = Column(String(50), nullable=False, default="")
    project_code = Column(String(50), nullable=False, default="")
    economic_classification_code = Column(String(50), nullable=False, default="")
    source_of_funding_code = Column(String(50), nullable=False, default="")
    function_code = Column(String(50), nullable=False, default="")
    amount = Column(Numeric(15, 2), nullable=False, default=0)
    recording_account = Column(String(100), nullable=False, default="")
    expected_payment_date = Column(String(20), nullable=False, default="")
    urgent_payment = Column(Boolean, nullable=False, default=False)
    posting_account = Column(String(100), nullable=False, default="")
    created_at = Column(DateTime, default=func.now(), nullable=False)
    updated_at = Column(DateTime, default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    commitment = relationship("Commitment", back_populates="items", lazy="select")
