"""
Pydantic v2 schemas for the commitment data model.

A ``Header`` describes the batch (one per user account); each ``Record`` is
one commitment with exactly one embedded ``RecordItem`` holding its budget
classification and amount.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from commitments.config import get_settings


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Header(BaseModel):
    """Batch-level attributes written on the ``<commitments>`` root element.

    Attributes:
        cumulative_reason_code: Reason code applying to the whole batch.
        budget_year: Budget year as a string, e.g. ``"2026"``.
        budget_user_id: Identifier of the budget user submitting the batch.
        currency_code: ISO currency code, e.g. ``"RSD"``.
        treasury: Treasury branch code.
    """

    cumulative_reason_code: str = ""
    budget_year: str = ""
    budget_user_id: str = ""
    currency_code: str = ""
    treasury: str = ""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "cumulative_reason_code": "PO07",
                "budget_year": "2026",
                "budget_user_id": "01234",
                "currency_code": "RSD",
                "treasury": "604",
            }
        }
    )


def default_header(budget_user_id: str = "", treasury: str = "") -> Header:
    """Return the header used when nothing has been saved for a user yet.

    Only the reason code, year and currency carry values; the budget user
    and treasury come from the user account when it defines them.
    """
    settings = get_settings()
    return Header(
        cumulative_reason_code=settings.DEFAULT_REASON_CODE,
        budget_year=str(date.today().year),
        budget_user_id=budget_user_id,
        currency_code=settings.DEFAULT_CURRENCY_CODE,
        treasury=treasury,
    )


class RecordItem(BaseModel):
    """Budget classification sub-record attached to every commitment."""

    budget_user_id: str = ""
    program_code: str = ""
    project_code: str = ""
    economic_classification_code: str = ""
    source_of_funding_code: str = ""
    function_code: str = ""
    amount: float = Field(
        default=0,
        allow_inf_nan=False,
        description="Commitment amount; must be > 0 to export.",
    )
    recording_account: str = ""
    expected_payment_date: str = ""
    urgent_payment: bool = False
    posting_account: str = ""

    @field_validator("amount")
    @classmethod
    def round_amount(cls, value: float) -> float:
        # Stored as NUMERIC(15, 2) by the database backend.
        return round(value, 2)


class Record(BaseModel):
    """One commitment (invoice / payment obligation).

    ``created_at`` is internal bookkeeping used to order sequence
    renumbering; it is never written to the XML export.
    """

    id: str = Field(default_factory=_new_id)
    sequence_number: int | None = None
    reason_code: str = ""
    external_id: str = ""
    recipient: str = ""
    recipient_place: str = ""
    account_number: str = ""
    invoice_number: str = ""
    invoice_type: str = ""
    invoice_date: str = ""
    due_date: str = ""
    contract_number: str = ""
    payment_code: str = ""
    credit_model: str = ""
    credit_reference_number: str = ""
    payment_basis: str = ""
    item: RecordItem = Field(default_factory=RecordItem)
    created_at: datetime | None = Field(default_factory=_utcnow)


class RecordInput(BaseModel):
    """Editable part of a record as submitted by a form (no identity fields)."""

    reason_code: str = ""
    external_id: str = ""
    recipient: str = ""
    recipient_place: str = ""
    account_number: str = ""
    invoice_number: str = ""
    invoice_type: str = ""
    invoice_date: str = ""
    due_date: str = ""
    contract_number: str = ""
    payment_code: str = ""
    credit_model: str = ""
    credit_reference_number: str = ""
    payment_basis: str = ""
    item: RecordItem = Field(default_factory=RecordItem)


class ValidationIssue(BaseModel):
    """A single failed field check.

    Attributes:
        field: Machine-readable field key, e.g. ``"record_0_item_amount"``.
        message: Human-readable message, e.g. ``"Row 1: Recipient is required"``.
        record_id: Id of the offending record, ``None`` for header issues.
    """

    field: str
    message: str
    record_id: str | None = None


class BulkEditData(BaseModel):
    """Explicit set of optional updates applied to many records at once.

    ``None`` and blank strings mean "leave unchanged". ``urgent_payment``
    only ever sets the flag; clearing it is done with
    ``reset_urgent_payment``.
    """

    invoice_number: str | None = None
    invoice_type: str | None = None
    invoice_date: str | None = None
    due_date: str | None = None
    expected_payment_date: str | None = None
    contract_number: str | None = None
    payment_basis: str | None = None
    urgent_payment: bool | None = None
    reset_urgent_payment: bool = False
    record_ids: list[str] | None = Field(
        default=None,
        description="Restrict the edit to these record ids; omit for every record.",
    )


class RecordPage(BaseModel):
    """One page of the (optionally filtered) records table."""

    items: list[Record]
    total: int
    page: int
    page_size: int
    total_pages: int
    query: str = ""


class BulkResult(BaseModel):
    """Outcome of a bulk edit or bulk delete."""

    affected: int
    remaining: int
