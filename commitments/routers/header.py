"""
Batch header router.

Mounts under ``/api/header``. The header is one per user account and is
overwritten wholesale on every save.

Endpoints:
    GET /   Stored header, or the default header when none was saved.
    PUT /   Replace the header.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from commitments.schemas.records import Header
from commitments.services import record_service
from commitments.services.record_service import get_user_storage
from commitments.storage import StoragePort

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Header"])


@router.get("", response_model=Header, summary="Get the batch header")
def get_header(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> Header:
    return storage.load_header()


@router.put(
    "",
    response_model=Header,
    summary="Replace the batch header",
    responses={503: {"description": "Storage backend unavailable."}},
)
def put_header(
    header: Header,
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> Header:
    """Save *header*. Field validation only happens on export."""
    return record_service.save_header(storage, header)
