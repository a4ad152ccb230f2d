"""
Sequence-number integrity checks and repair for a user's record set.

Sequence numbers are per-user ordinals that should form the contiguous run
``1..N``. Nothing enforces that on write; instead this module audits a
record set and, on explicit request, renumbers it.

Design notes
------------
- Detection never mutates its input. Each anomaly becomes one
  ``SequenceIssue``: one per duplicated value, one aggregate for records
  without a number, and one per gap (including a run that does not start
  at 1).
- Gaps are computed over the *unique* sorted numbers, so a duplicated value
  is reported once as ``DUPLICATE`` and never as a gap.
- Renumbering orders by ``created_at`` ascending; ties, and records without
  a timestamp (sorted last), keep their original list position.
- The relational backend historically exposed stored procedures for the
  same purpose; those are an external contract and are not mirrored here.
  The checks below run on whatever records the storage port returns.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timezone

from commitments.exceptions import IntegrityRepairError
from commitments.schemas.integrity import (
    RenumberResult,
    SequenceIntegrity,
    SequenceIssue,
)
from commitments.schemas.records import Record
from commitments.utils.constants import (
    ISSUE_DUPLICATE,
    ISSUE_GAPS_DETECTED,
    ISSUE_NULL_SEQUENCE,
    STATUS_CORRUPTED,
    STATUS_HEALTHY,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _numbers(records: list[Record]) -> list[int]:
    return [r.sequence_number for r in records if r.sequence_number is not None]


def _aware(ts: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def _creation_key(indexed: tuple[int, Record]) -> tuple[bool, datetime, int]:
    position, record = indexed
    if record.created_at is None:
        return (True, _EPOCH, position)
    return (False, _aware(record.created_at), position)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_corruption(records: list[Record], user_id: str = "") -> list[SequenceIssue]:
    """Classify every sequence anomaly in *records*.

    Args:
        records: The user's record set, in any order.
        user_id: Owner id copied onto every issue.

    Returns:
        Issues ordered as duplicates (ascending value), missing numbers,
        then gaps (ascending). Empty when the set is a clean ``1..N`` run.
    """
    issues: list[SequenceIssue] = []

    counts = Counter(_numbers(records))
    for value in sorted(counts):
        if counts[value] > 1:
            issues.append(
                SequenceIssue(
                    user_id=user_id,
                    issue_type=ISSUE_DUPLICATE,
                    sequence_number=value,
                    record_count=counts[value],
                    details=f"Sequence number {value} is used by {counts[value]} records",
                )
            )

    missing = [r.id for r in records if r.sequence_number is None]
    if missing:
        issues.append(
            SequenceIssue(
                user_id=user_id,
                issue_type=ISSUE_NULL_SEQUENCE,
                sequence_number=None,
                record_count=len(missing),
                details=f"{len(missing)} record(s) without sequence number: {', '.join(missing)}",
            )
        )

    unique = sorted(counts)
    if unique and unique[0] != 1:
        issues.append(
            SequenceIssue(
                user_id=user_id,
                issue_type=ISSUE_GAPS_DETECTED,
                sequence_number=unique[0],
                record_count=0,
                details=f"Sequence does not start at 1 (first is {unique[0]})",
            )
        )
    for lower, upper in zip(unique, unique[1:]):
        if upper - lower > 1:
            issues.append(
                SequenceIssue(
                    user_id=user_id,
                    issue_type=ISSUE_GAPS_DETECTED,
                    sequence_number=upper,
                    record_count=0,
                    details=f"Gap detected between sequence {lower} and {upper}",
                )
            )

    if issues:
        logger.debug("detect_corruption: user=%s issues=%d", user_id, len(issues))
    return issues


def check_integrity(
    records: list[Record],
    user_id: str = "",
    username: str = "",
) -> SequenceIntegrity:
    """Summarise the health of a record set (min, max, unique count, status)."""
    numbers = _numbers(records)
    total = len(records)
    unique = set(numbers)
    healthy = (
        len(numbers) == total
        and len(unique) == total
        and (total == 0 or (min(unique) == 1 and max(unique) == total))
    )
    return SequenceIntegrity(
        user_id=user_id,
        username=username,
        total_records=total,
        min_sequence=min(numbers) if numbers else None,
        max_sequence=max(numbers) if numbers else None,
        expected_count=total,
        unique_sequences=len(unique),
        status=STATUS_HEALTHY if healthy else STATUS_CORRUPTED,
    )


def validate_sequence_order(records: list[Record]) -> tuple[bool, list[str]]:
    """Check duplicates, gaps and that higher numbers are not older records.

    Args:
        records: Records in display order.

    Returns:
        ``(is_valid, issues)`` where *issues* are human-readable messages.
    """
    issues: list[str] = []
    if not records:
        return True, issues

    numbers = _numbers(records)
    if not numbers:
        return False, ["No sequence numbers found in records"]

    if len(set(numbers)) != len(numbers):
        issues.append(
            f"Duplicate sequence numbers detected "
            f"({len(numbers)} total, {len(set(numbers))} unique)"
        )

    ordered = sorted(numbers)
    for lower, upper in zip(ordered, ordered[1:]):
        if upper - lower > 1:
            issues.append(f"Gap detected between sequence {lower} and {upper}")

    for current, following in zip(records, records[1:]):
        if (
            current.sequence_number
            and following.sequence_number
            and current.sequence_number >= following.sequence_number
            and current.created_at is not None
            and following.created_at is not None
            and _aware(current.created_at) < _aware(following.created_at)
        ):
            issues.append(
                f"Sequence order mismatch: Record #{current.sequence_number} "
                f"is newer than #{following.sequence_number}"
            )

    return not issues, issues


# ---------------------------------------------------------------------------
# Allocation and display
# ---------------------------------------------------------------------------


def next_sequence_number(records: list[Record]) -> int:
    """Return the number a newly created record should receive."""
    numbers = _numbers(records)
    return max(numbers) + 1 if numbers else 1


def display_number(record: Record, fallback_index: int | None = None) -> str:
    """Label shown in tables: the number, ``"{i+1}*"`` as fallback, or ``"?"``."""
    if record.sequence_number is not None:
        return str(record.sequence_number)
    if fallback_index is not None:
        return f"{fallback_index + 1}*"
    return "?"


# ---------------------------------------------------------------------------
# Repair
# ---------------------------------------------------------------------------


def renumber(
    records: list[Record],
    user_id: str = "",
    confirm: bool = True,
) -> tuple[list[Record], RenumberResult]:
    """Reassign sequence numbers ``1..N`` by creation time.

    Args:
        records: The user's full record set.
        user_id: Owner id reported in the result.
        confirm: Must be ``True``; renumbering cannot be undone.

    Returns:
        The renumbered records, sorted by their new number, and a
        ``RenumberResult`` counting the records whose number changed.

    Raises:
        IntegrityRepairError: If *confirm* is false.
    """
    if not confirm:
        raise IntegrityRepairError(
            "Renumbering is irreversible and must be confirmed explicitly"
        )

    ordered = sorted(enumerate(records), key=_creation_key)
    renumbered: list[Record] = []
    changed = 0
    for new_number, (_, record) in enumerate(ordered, start=1):
        if record.sequence_number != new_number:
            changed += 1
        renumbered.append(record.model_copy(update={"sequence_number": new_number}))

    logger.info(
        "renumber: user=%s total=%d changed=%d", user_id, len(renumbered), changed
    )
    return renumbered, RenumberResult(
        user_id=user_id,
        records_renumbered=changed,
        total_records=len(renumbered),
    )


def auto_repair_if_corrupted(
    records: list[Record],
    user_id: str = "",
) -> tuple[list[Record], RenumberResult | None]:
    """Renumber only when ``detect_corruption`` finds something."""
    issues = detect_corruption(records, user_id)
    if not issues:
        return records, None
    logger.warning(
        "Sequence corruption detected for user=%s (%d issues), renumbering",
        user_id,
        len(issues),
    )
    return renumber(records, user_id=user_id, confirm=True)
