"""
Record lifecycle for one user's commitment set.

All mutating functions load the current set from the storage port, apply
the change, save the whole set back and then record the change in the
monthly activity log. Pure helpers (``new_record``, ``search_records``,
``paginate``, ``apply_bulk_edit``) never touch storage.

Design notes
------------
- New records get ``sequence_number = max + 1`` so numbering stays
  contiguous as long as nothing is deleted.
- Bulk edit is an explicit, field-by-field application of
  ``BulkEditData``. Blank strings count as "no change", so a field cannot
  be blanked through bulk edit.
- XML import either replaces the record set (and header) or appends to it;
  the parse happens before any state is touched.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Annotated, Literal

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from commitments.config import get_settings
from commitments.database import get_db
from commitments.exceptions import PersistenceError
from commitments.parsers.xml_parser import ParsedXml
from commitments.schemas.records import (
    BulkEditData,
    BulkResult,
    Header,
    Record,
    RecordInput,
    RecordPage,
    default_header,
)
from commitments.services import activity_service
from commitments.services.auth_service import SessionContext, get_current_session, get_store
from commitments.services.sequence_service import next_sequence_number
from commitments.storage import KeyValueStore, LocalStorage, StoragePort, get_storage
from commitments.utils.constants import PREFILL_EXCLUDED_FIELDS, SEARCH_FIELDS

logger = logging.getLogger(__name__)

# Top-level string fields a bulk edit may set
_BULK_RECORD_FIELDS: tuple[str, ...] = (
    "invoice_number",
    "invoice_type",
    "invoice_date",
    "due_date",
    "contract_number",
    "payment_basis",
)


# ---------------------------------------------------------------------------
# FastAPI dependency
# ---------------------------------------------------------------------------


def get_user_storage(
    session: Annotated[SessionContext, Depends(get_current_session)],
    db: Annotated[Session, Depends(get_db)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> StoragePort:
    """Storage port bound to the caller's user id.

    The default header is pre-filled with the account's budget user and
    treasury codes.
    """
    return get_storage(
        session.user_id,
        db=db,
        header_defaults=default_header(session.budget_user_id, session.treasury),
        kv_store=store,
    )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def new_record(previous: Record | None = None, prefill: bool = True) -> Record:
    """Return a blank record, or one copied from *previous*.

    Identity fields (``id``, ``sequence_number``, ``external_id``,
    ``created_at``) are never copied.
    """
    if previous is None or not prefill:
        return Record()
    data = previous.model_dump(exclude=set(PREFILL_EXCLUDED_FIELDS))
    data["item"] = previous.item.model_copy()
    return Record(**data)


def search_records(records: list[Record], query: str | None) -> list[Record]:
    """Case-insensitive substring search over ``SEARCH_FIELDS``."""
    if not query or not query.strip():
        return list(records)
    needle = query.strip().lower()
    return [
        r
        for r in records
        if any(needle in (getattr(r, name) or "").lower() for name in SEARCH_FIELDS)
    ]


def paginate(
    records: list[Record],
    page: int = 1,
    page_size: int = 20,
    query: str = "",
) -> RecordPage:
    """Slice *records* into 1-based pages; past-the-end pages clamp to the last one."""
    total = len(records)
    total_pages = max(1, math.ceil(total / page_size))
    page = min(max(page, 1), total_pages)
    start = (page - 1) * page_size
    return RecordPage(
        items=records[start : start + page_size],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages,
        query=query,
    )


def _filled(value: str | None) -> bool:
    return bool((value or "").strip())


def _has_updates(updates: BulkEditData) -> bool:
    if any(_filled(getattr(updates, name)) for name in _BULK_RECORD_FIELDS):
        return True
    return _filled(updates.expected_payment_date) or updates.urgent_payment is True or updates.reset_urgent_payment


def apply_bulk_edit(records: list[Record], updates: BulkEditData) -> tuple[list[Record], int]:
    """Apply *updates* to every targeted record.

    Targets are all records, or only those whose id is in
    ``updates.record_ids``. ``None`` and blank values are skipped.

    Returns:
        The new record list (same order) and the number of records touched.

    Raises:
        ValueError: If *updates* carries no effective change.
    """
    if not _has_updates(updates):
        raise ValueError("No updates to apply")

    targets = None if updates.record_ids is None else set(updates.record_ids)
    record_changes = {
        name: getattr(updates, name)
        for name in _BULK_RECORD_FIELDS
        if _filled(getattr(updates, name))
    }
    item_changes: dict[str, object] = {}
    if _filled(updates.expected_payment_date):
        item_changes["expected_payment_date"] = updates.expected_payment_date
    if updates.urgent_payment is True:
        item_changes["urgent_payment"] = True
    if updates.reset_urgent_payment:
        item_changes["urgent_payment"] = False

    result: list[Record] = []
    modified = 0
    for record in records:
        if targets is not None and record.id not in targets:
            result.append(record)
            continue
        item = record.item.model_copy(update=item_changes) if item_changes else record.item
        result.append(record.model_copy(update={**record_changes, "item": item}))
        modified += 1
    return result, modified


# ---------------------------------------------------------------------------
# Storage-backed operations
# ---------------------------------------------------------------------------


def _log(
    store: KeyValueStore | None,
    user_id: str,
    created: int = 0,
    modified: int = 0,
    amount: float = 0,
) -> None:
    if store is not None:
        activity_service.log_activity(store, user_id, created, modified, amount)


def _index_or_404(records: list[Record], record_id: str) -> int:
    for index, record in enumerate(records):
        if record.id == record_id:
            return index
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Record '{record_id}' not found",
    )


def get_record(storage: StoragePort, record_id: str) -> Record:
    records = storage.load_records()
    return records[_index_or_404(records, record_id)]


def add_record(
    storage: StoragePort,
    data: RecordInput,
    store: KeyValueStore | None = None,
) -> Record:
    """Append a record built from *data* with the next sequence number."""
    records = storage.load_records()
    record = Record(
        **data.model_dump(exclude={"item"}),
        item=data.item.model_copy(),
        sequence_number=next_sequence_number(records),
        created_at=datetime.now(timezone.utc),
    )
    records.append(record)
    storage.save_records(records)
    _log(store, storage.user_id, created=1, amount=record.item.amount)
    logger.info(
        "Record added: user=%s id=%s sequence=%s",
        storage.user_id,
        record.id,
        record.sequence_number,
    )
    return record


def create_blank_record(
    storage: StoragePort,
    prefill: bool | None = None,
    store: KeyValueStore | None = None,
) -> Record:
    """Add a new record, pre-filled from the last one when enabled."""
    records = storage.load_records()
    if prefill is None:
        prefill = load_prefill_enabled(storage, store)
    draft = new_record(records[-1] if records else None, prefill)
    return add_record(storage, RecordInput.model_validate(draft.model_dump()), store)


def update_record(
    storage: StoragePort,
    record_id: str,
    data: RecordInput,
    store: KeyValueStore | None = None,
) -> Record:
    """Replace the editable fields of one record; identity fields are kept."""
    records = storage.load_records()
    index = _index_or_404(records, record_id)
    current = records[index]
    updated = current.model_copy(
        update={**data.model_dump(exclude={"item"}), "item": data.item.model_copy()}
    )
    records[index] = updated
    storage.save_records(records)
    _log(store, storage.user_id, modified=1, amount=updated.item.amount)
    logger.info("Record updated: user=%s id=%s", storage.user_id, record_id)
    return updated


def delete_record(storage: StoragePort, record_id: str) -> None:
    records = storage.load_records()
    index = _index_or_404(records, record_id)
    del records[index]
    storage.save_records(records)
    logger.info("Record deleted: user=%s id=%s", storage.user_id, record_id)


def delete_records(storage: StoragePort, record_ids: list[str]) -> BulkResult:
    """Delete every record whose id is in *record_ids*; unknown ids are ignored."""
    wanted = set(record_ids)
    records = storage.load_records()
    kept = [r for r in records if r.id not in wanted]
    affected = len(records) - len(kept)
    if affected:
        storage.save_records(kept)
    logger.info("Bulk delete: user=%s deleted=%d remaining=%d", storage.user_id, affected, len(kept))
    return BulkResult(affected=affected, remaining=len(kept))


def clear_records(storage: StoragePort, include_header: bool = False) -> int:
    """Delete every record; with *include_header* the header goes as well.

    Returns:
        The number of records removed.
    """
    count = len(storage.load_records())
    if include_header:
        storage.clear_all()
    else:
        storage.save_records([])
    logger.info("Records cleared: user=%s count=%d header=%s", storage.user_id, count, include_header)
    return count


def bulk_edit(
    storage: StoragePort,
    updates: BulkEditData,
    store: KeyValueStore | None = None,
) -> BulkResult:
    """Apply ``apply_bulk_edit`` to the stored set and save it.

    Raises:
        HTTPException 422: If *updates* carries no effective change.
    """
    records = storage.load_records()
    try:
        edited, modified = apply_bulk_edit(records, updates)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    storage.save_records(edited)
    _log(store, storage.user_id, modified=modified)
    logger.info("Bulk edit: user=%s modified=%d", storage.user_id, modified)
    return BulkResult(affected=modified, remaining=len(edited))


def import_parsed(
    storage: StoragePort,
    parsed: ParsedXml,
    mode: Literal["replace", "append"] = "replace",
    store: KeyValueStore | None = None,
) -> list[Record]:
    """Store the records of an already-parsed document.

    ``replace`` overwrites the header and the record set. ``append`` keeps
    the header and continues numbering after the current maximum for
    imported records that carry no sequence number. A replace whose records
    cannot be saved puts the previous header back before re-raising.
    """
    previous_header = None
    if mode == "replace":
        previous_header = storage.load_header()
        storage.save_header(parsed.header)
        records = list(parsed.records)
    else:
        records = storage.load_records()
        for record in parsed.records:
            if record.sequence_number is None:
                record = record.model_copy(update={"sequence_number": next_sequence_number(records)})
            records.append(record)
    try:
        storage.save_records(records)
    except PersistenceError:
        if previous_header is not None:
            storage.save_header(previous_header)
            logger.warning("XML import failed, header restored: user=%s", storage.user_id)
        raise
    _log(
        store,
        storage.user_id,
        created=parsed.record_count,
        amount=sum(r.item.amount for r in parsed.records),
    )
    logger.info(
        "XML imported: user=%s mode=%s imported=%d total=%d",
        storage.user_id,
        mode,
        parsed.record_count,
        len(records),
    )
    return records


def list_page(storage: StoragePort, query: str = "", page: int = 1, page_size: int | None = None) -> RecordPage:
    records = search_records(storage.load_records(), query)
    return paginate(records, page, page_size or get_settings().PAGE_SIZE, query or "")


# ---------------------------------------------------------------------------
# Header and prefill preference
# ---------------------------------------------------------------------------


def save_header(storage: StoragePort, header: Header) -> Header:
    storage.save_header(header)
    logger.info("Header saved: user=%s", storage.user_id)
    return header


def load_prefill_enabled(storage: StoragePort, store: KeyValueStore | None = None) -> bool:
    """Prefill preference of the user; ``True`` when never set."""
    if isinstance(storage, LocalStorage):
        return storage.load_prefill_enabled()
    if store is not None:
        return LocalStorage(store, storage.user_id).load_prefill_enabled()
    return True


def save_prefill_enabled(storage: StoragePort, enabled: bool, store: KeyValueStore | None = None) -> bool:
    """Persist the prefill preference.

    The remote backend has no column for it, so the preference is kept in
    the user's local namespace of *store* in that case.
    """
    if isinstance(storage, LocalStorage):
        storage.save_prefill_enabled(enabled)
    elif store is not None:
        LocalStorage(store, storage.user_id).save_prefill_enabled(enabled)
    return enabled
