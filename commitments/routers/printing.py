"""
Print router.

Mounts under ``/api/print``.

GET /pdf  PDF listing of the caller's commitments, signed with the
          account's ``pdf_display_name`` (or ``display_name`` if given).
"""

from __future__ import annotations

import io
import logging
from datetime import date
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from commitments.exporters.pdf_exporter import build_commitments_pdf
from commitments.services.auth_service import SessionContext, get_current_session
from commitments.services.record_service import get_user_storage
from commitments.storage import StoragePort

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Print"])


@router.get(
    "/pdf",
    summary="Print commitments as PDF",
    response_class=StreamingResponse,
    responses={200: {"description": "PDF document.", "content": {"application/pdf": {}}}},
)
def print_pdf(
    session: Annotated[SessionContext, Depends(get_current_session)],
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    display_name: Annotated[str | None, Query(max_length=200)] = None,
) -> StreamingResponse:
    header = storage.load_header()
    records = storage.load_records()
    signer = display_name if display_name is not None else session.pdf_display_name
    try:
        file_bytes = build_commitments_pdf(header, records, signer)
    except Exception as exc:
        logger.exception("print_pdf failed: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Error generating the PDF file: {exc}",
        ) from exc

    filename = f"commitments_{date.today().isoformat()}.pdf"
    logger.info("PDF printed: user=%s records=%d", session.user_id, len(records))
    return StreamingResponse(
        io.BytesIO(file_bytes),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(file_bytes)),
        },
    )
