"""
Sequence-integrity router.

Mounts under ``/api/integrity``.

Endpoints
---------
GET  /           Issues and health summary of the caller's sequence numbers
POST /renumber   Reassign 1..N by creation time (requires ``confirm=true``)
GET  /admin      Health summary of every user (admin only)
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from commitments.database import get_db
from commitments.exceptions import IntegrityRepairError
from commitments.schemas.integrity import IntegrityReport, RenumberResult
from commitments.services import sequence_service, user_service
from commitments.services.auth_service import (
    ADMIN_USER_ID,
    SessionContext,
    get_current_session,
    get_store,
    require_admin,
)
from commitments.services.record_service import get_user_storage
from commitments.storage import KeyValueStore, StoragePort, get_storage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Integrity"])


def _report(storage: StoragePort, username: str) -> IntegrityReport:
    records = storage.load_records()
    _, order_issues = sequence_service.validate_sequence_order(records)
    return IntegrityReport(
        integrity=sequence_service.check_integrity(records, storage.user_id, username),
        issues=sequence_service.detect_corruption(records, storage.user_id),
        order_issues=order_issues,
    )


@router.get("", response_model=IntegrityReport, summary="Check sequence integrity")
def check_integrity(
    session: Annotated[SessionContext, Depends(get_current_session)],
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> IntegrityReport:
    return _report(storage, session.username)


@router.post(
    "/renumber",
    response_model=RenumberResult,
    summary="Renumber records 1..N",
    responses={409: {"description": "Renumbering was not confirmed."}},
)
def renumber(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    confirm: Annotated[bool, Query(description="Must be true; renumbering cannot be undone.")] = False,
) -> RenumberResult:
    """Reassign sequence numbers by ascending creation time and save the set."""
    try:
        records, result = sequence_service.renumber(
            storage.load_records(), user_id=storage.user_id, confirm=confirm
        )
    except IntegrityRepairError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    storage.save_records(records)
    return result


@router.get("/admin", response_model=list[IntegrityReport], summary="Integrity of every user")
def check_all_users(
    _admin: Annotated[SessionContext, Depends(require_admin)],
    store: Annotated[KeyValueStore, Depends(get_store)],
    db: Annotated[Session, Depends(get_db)],
) -> list[IntegrityReport]:
    owners = [(u.id, u.username) for u in user_service.list_users(store)]
    owners.append((ADMIN_USER_ID, ADMIN_USER_ID))
    reports = []
    for user_id, username in owners:
        storage = get_storage(user_id, db=db, kv_store=store)
        reports.append(_report(storage, username))
    corrupted = sum(1 for r in reports if r.integrity.status != "HEALTHY")
    logger.info("Integrity sweep: users=%d corrupted=%d", len(reports), corrupted)
    return reports
