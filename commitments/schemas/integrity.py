"""
Pydantic v2 schemas for sequence-integrity reports and XML verification.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from commitments.schemas.records import ValidationIssue


class SequenceIssue(BaseModel):
    """One anomaly found in a user's sequence numbers.

    Attributes:
        user_id: Owner of the record set.
        issue_type: ``DUPLICATE``, ``NULL_SEQUENCE`` or ``GAPS_DETECTED``.
        sequence_number: The duplicated value, the value right after a gap,
            or ``None`` for missing numbers.
        record_count: Records involved in the anomaly.
        details: Human-readable description.
    """

    user_id: str
    issue_type: Literal["DUPLICATE", "NULL_SEQUENCE", "GAPS_DETECTED"]
    sequence_number: int | None = None
    record_count: int = 0
    details: str = ""


class SequenceIntegrity(BaseModel):
    """Per-user health summary of the sequence numbers."""

    user_id: str
    username: str = ""
    total_records: int = 0
    min_sequence: int | None = None
    max_sequence: int | None = None
    expected_count: int = 0
    unique_sequences: int = 0
    status: Literal["HEALTHY", "CORRUPTED"] = "HEALTHY"


class RenumberResult(BaseModel):
    """Outcome of a renumbering run."""

    user_id: str
    records_renumbered: int = Field(
        ..., description="Records whose sequence number actually changed."
    )
    total_records: int = 0


class IntegrityReport(BaseModel):
    """Response of the integrity check endpoint."""

    integrity: SequenceIntegrity
    issues: list[SequenceIssue]
    order_issues: list[str] = Field(default_factory=list)


class XmlSummary(BaseModel):
    """Result of verifying an XML file on its own."""

    total: int
    urgent_count: int
    duplicates: list[str]
    sequence_gaps: bool
    validation_errors: list[ValidationIssue]


class SequenceMismatch(BaseModel):
    key: str
    parsed_sequence: int | None = None
    app_sequence: int | None = None


class XmlComparison(BaseModel):
    """Result of comparing an XML file against the stored record set."""

    parsed_count: int
    app_count: int
    missing_in_app: list[str]
    extra_in_app: list[str]
    sequence_mismatches: list[SequenceMismatch]
    header_match: bool
