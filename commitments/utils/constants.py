"""
Application-wide constants for the commitments admin system.

Defines the fixed storage keys, account enumerations, sequence issue
kinds and the field lists shared by the codec, validator and bulk edit.
"""

from typing import Final

# ---------------------------------------------------------------------------
# Key-value storage keys (one JSON blob per key)
# ---------------------------------------------------------------------------

KEY_HEADER: Final[str] = "xml_records_header"
KEY_RECORDS: Final[str] = "xml_records_records"
KEY_PREFILL_ENABLED: Final[str] = "xml_records_prefill_enabled"

KEY_USERS: Final[str] = "xml_app_users"
KEY_ADMIN_CREDENTIALS: Final[str] = "xml_app_admin_credentials"
KEY_CURRENT_SESSIONS: Final[str] = "xml_app_current_user"
KEY_MONTHLY_ACTIVITIES: Final[str] = "xml_app_monthly_activities"

# Per-user keys cleared by ``StoragePort.clear_all``
USER_DATA_KEYS: Final[tuple[str, ...]] = (
    KEY_HEADER,
    KEY_RECORDS,
    KEY_PREFILL_ENABLED,
)

# ---------------------------------------------------------------------------
# Sequence integrity
# ---------------------------------------------------------------------------

ISSUE_DUPLICATE: Final[str] = "DUPLICATE"
ISSUE_NULL_SEQUENCE: Final[str] = "NULL_SEQUENCE"
ISSUE_GAPS_DETECTED: Final[str] = "GAPS_DETECTED"

STATUS_HEALTHY: Final[str] = "HEALTHY"
STATUS_CORRUPTED: Final[str] = "CORRUPTED"

# ---------------------------------------------------------------------------
# XML wire format; attribute and element order is part of the format
# ---------------------------------------------------------------------------

HEADER_FIELDS: Final[tuple[str, ...]] = (
    "cumulative_reason_code",
    "budget_year",
    "budget_user_id",
    "currency_code",
    "treasury",
)

COMMITMENT_ATTRIBUTES: Final[tuple[str, ...]] = (
    "reason_code",
    "external_id",
    "recipient",
    "recipient_place",
    "account_number",
    "invoice_number",
    "invoice_type",
    "invoice_date",
    "due_date",
    "contract_number",
    "payment_code",
    "credit_model",
    "credit_reference_number",
    "payment_basis",
)

ITEM_ELEMENTS: Final[tuple[str, ...]] = (
    "budget_user_id",
    "program_code",
    "project_code",
    "economic_classification_code",
    "source_of_funding_code",
    "function_code",
    "amount",
    "recording_account",
    "expected_payment_date",
    "urgent_payment",
    "posting_account",
)

# Fields scanned by the free-text record search
SEARCH_FIELDS: Final[tuple[str, ...]] = (
    "recipient",
    "invoice_number",
    "account_number",
    "external_id",
    "contract_number",
    "payment_basis",
)

# Fields never copied when a new record is pre-filled from the previous one
PREFILL_EXCLUDED_FIELDS: Final[frozenset[str]] = frozenset(
    {"id", "sequence_number", "external_id", "created_at"}
)
