"""
Field-presence and amount checks that gate the XML export.

Pure functions: they never raise and never touch storage. The order of the
returned issues is stable (header first, then records in list order, then
fields in the order listed below) so that clients can render them as-is.
"""

from __future__ import annotations

import math

from commitments.schemas.records import Header, Record, ValidationIssue

# (field, label) pairs checked on the header, in report order
_HEADER_CHECKS: tuple[tuple[str, str], ...] = (
    ("cumulative_reason_code", "Cumulative reason code"),
    ("budget_year", "Budget year"),
    ("budget_user_id", "Budget user ID"),
    ("currency_code", "Currency code"),
    ("treasury", "Treasury"),
)

_RECORD_CHECKS: tuple[tuple[str, str], ...] = (
    ("reason_code", "Reason code"),
    ("recipient", "Recipient"),
    ("recipient_place", "Recipient place"),
    ("account_number", "Account number"),
    ("invoice_date", "Invoice date"),
    ("due_date", "Due date"),
)

# "amount" is not a presence check; it is evaluated in place to keep ordering
_ITEM_CHECKS: tuple[tuple[str, str], ...] = (
    ("budget_user_id", "Item budget user ID"),
    ("program_code", "Item program code"),
    ("economic_classification_code", "Item economic classification code"),
    ("source_of_funding_code", "Item source of funding code"),
    ("function_code", "Item function code"),
    ("amount", "Item amount"),
    ("recording_account", "Item recording account"),
    ("expected_payment_date", "Item expected payment date"),
)


def _blank(value: str | None) -> bool:
    return not (value or "").strip()


def validate_header(header: Header) -> list[ValidationIssue]:
    """Return one issue per empty header field."""
    return [
        ValidationIssue(field=field, message=f"{label} is required")
        for field, label in _HEADER_CHECKS
        if _blank(getattr(header, field))
    ]


def validate_record(record: Record, index: int) -> list[ValidationIssue]:
    """Check a single record located at *index* (0-based) in the list.

    Args:
        record: The record to check.
        index: Position in the record list; used for the field key prefix
            (``record_{index}``) and the 1-based row label in messages.

    Returns:
        Issues in field order, each tied to ``record.id``.
    """
    prefix = f"record_{index}"
    row = f"Row {index + 1}"
    issues: list[ValidationIssue] = []

    for field, label in _RECORD_CHECKS:
        if _blank(getattr(record, field)):
            issues.append(
                ValidationIssue(
                    field=f"{prefix}_{field}",
                    message=f"{row}: {label} is required",
                    record_id=record.id,
                )
            )

    for field, label in _ITEM_CHECKS:
        if field == "amount":
            amount = record.item.amount
            if not (math.isfinite(amount) and amount > 0):
                issues.append(
                    ValidationIssue(
                        field=f"{prefix}_item_amount",
                        message=f"{row}: {label} must be greater than 0",
                        record_id=record.id,
                    )
                )
            continue
        if _blank(getattr(record.item, field)):
            issues.append(
                ValidationIssue(
                    field=f"{prefix}_item_{field}",
                    message=f"{row}: {label} is required",
                    record_id=record.id,
                )
            )

    return issues


def validate_all(header: Header, records: list[Record]) -> list[ValidationIssue]:
    """Validate the header and every record; an empty list means exportable."""
    issues = validate_header(header)

    if not records:
        issues.append(
            ValidationIssue(field="records", message="At least one record is required")
        )
        return issues

    for index, record in enumerate(records):
        issues.extend(validate_record(record, index))
    return issues
