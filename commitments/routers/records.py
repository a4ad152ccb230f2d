"""
Records router.

Mounts under ``/api/records``. Every endpoint works on the caller's own
record set, resolved from the session token.

Endpoints
---------
GET    /              Search (``q``) and paginate (``page``, ``page_size``)
POST   /              Create a record (``prefill`` copies the last one)
DELETE /              Delete every record (``include_header`` also drops the header)
GET    /prefill       Prefill preference
PUT    /prefill       Set the prefill preference
GET    /validate      Validation issues of header and records
POST   /bulk-delete   Delete many records by id
POST   /bulk-edit     Apply ``BulkEditData`` to all or selected records
GET    /{record_id}   One record
PUT    /{record_id}   Replace a record's editable fields
DELETE /{record_id}   Delete one record
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import BaseModel

from commitments.schemas.common import MessageResponse
from commitments.schemas.records import (
    BulkEditData,
    BulkResult,
    Record,
    RecordInput,
    RecordPage,
    ValidationIssue,
)
from commitments.services import record_service
from commitments.services.auth_service import get_store
from commitments.services.record_service import get_user_storage
from commitments.services.validation import validate_all
from commitments.storage import KeyValueStore, StoragePort

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Records"])


class PrefillSetting(BaseModel):
    enabled: bool


class BulkDeleteRequest(BaseModel):
    record_ids: list[str]


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("", response_model=RecordPage, summary="List records")
def list_records(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    q: Annotated[str, Query(max_length=200, description="Case-insensitive search text.")] = "",
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int | None, Query(ge=1, le=200)] = None,
) -> RecordPage:
    """Return one page of the (optionally filtered) records.

    Pages past the end clamp to the last page.
    """
    return record_service.list_page(storage, q, page, page_size)


@router.post(
    "",
    response_model=Record,
    status_code=status.HTTP_201_CREATED,
    summary="Create a record",
    responses={503: {"description": "Storage backend unavailable."}},
)
def create_record(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
    data: Annotated[RecordInput | None, Body()] = None,
    prefill: Annotated[bool | None, Query(description="Override the stored prefill preference.")] = None,
) -> Record:
    """Create a record from *data*, or a blank/pre-filled one when no body is sent."""
    if data is None:
        return record_service.create_blank_record(storage, prefill, store)
    return record_service.add_record(storage, data, store)


@router.delete("", response_model=BulkResult, summary="Delete every record")
def clear_records(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    include_header: bool = False,
) -> BulkResult:
    removed = record_service.clear_records(storage, include_header)
    return BulkResult(affected=removed, remaining=0)


# ---------------------------------------------------------------------------
# Preferences and checks
# ---------------------------------------------------------------------------


@router.get("/prefill", response_model=PrefillSetting, summary="Get prefill preference")
def get_prefill(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> PrefillSetting:
    return PrefillSetting(enabled=record_service.load_prefill_enabled(storage, store))


@router.put("/prefill", response_model=PrefillSetting, summary="Set prefill preference")
def put_prefill(
    setting: PrefillSetting,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> PrefillSetting:
    return PrefillSetting(enabled=record_service.save_prefill_enabled(storage, setting.enabled, store))


@router.get("/validate", response_model=list[ValidationIssue], summary="Validate header and records")
def validate_records(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> list[ValidationIssue]:
    """Run every export check; an empty list means the set can be exported."""
    return validate_all(storage.load_header(), storage.load_records())


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


@router.post("/bulk-delete", response_model=BulkResult, summary="Delete selected records")
def bulk_delete(
    request: BulkDeleteRequest,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> BulkResult:
    return record_service.delete_records(storage, request.record_ids)


@router.post(
    "/bulk-edit",
    response_model=BulkResult,
    summary="Edit many records at once",
    responses={422: {"description": "No effective update in the request."}},
)
def bulk_edit(
    updates: BulkEditData,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> BulkResult:
    """Apply the non-empty fields of *updates* to every targeted record.

    Empty strings are skipped, so a field cannot be blanked this way.
    ``urgent_payment: true`` sets the flag; ``reset_urgent_payment: true``
    clears it.
    """
    return record_service.bulk_edit(storage, updates, store)


# ---------------------------------------------------------------------------
# Single record
# ---------------------------------------------------------------------------


@router.get(
    "/{record_id}",
    response_model=Record,
    summary="Get one record",
    responses={404: {"description": "Unknown record id."}},
)
def get_record(
    record_id: str,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> Record:
    return record_service.get_record(storage, record_id)


@router.put(
    "/{record_id}",
    response_model=Record,
    summary="Update one record",
    responses={404: {"description": "Unknown record id."}},
)
def update_record(
    record_id: str,
    data: RecordInput,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
) -> Record:
    return record_service.update_record(storage, record_id, data, store)


@router.delete(
    "/{record_id}",
    response_model=MessageResponse,
    summary="Delete one record",
    responses={404: {"description": "Unknown record id."}},
)
def delete_record(
    record_id: str,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> MessageResponse:
    record_service.delete_record(storage, record_id)
    return MessageResponse(message=f"Record {record_id} deleted")
