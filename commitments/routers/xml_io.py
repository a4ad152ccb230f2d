"""
XML import / export router.

Mounts under ``/api/xml``.

Endpoints
---------
GET  /export   Download the caller's set as ``commitments_<date>.xml``
POST /import   Upload a file and store its header and records
POST /verify   Parse an uploaded file and summarise it (nothing stored)
POST /compare  Diff an uploaded file against the stored set (nothing stored)

Export is refused with 422 while ``validate_all`` reports issues; the
issues are returned in the body. An unparseable upload is a 400 whose
``detail`` is the parser's message, and nothing is stored.
"""

from __future__ import annotations

import io
import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel

from commitments.exceptions import XmlParseError
from commitments.exporters.xml_exporter import export_filename, generate_xml
from commitments.parsers.xml_parser import ParsedXml, parse_xml, read_xml_upload
from commitments.schemas.integrity import XmlComparison, XmlSummary
from commitments.schemas.records import Header
from commitments.services import record_service, xml_verification
from commitments.services.auth_service import get_store
from commitments.services.record_service import get_user_storage
from commitments.services.validation import validate_all
from commitments.storage import KeyValueStore, StoragePort

logger = logging.getLogger(__name__)

router = APIRouter(tags=["XML"])


class ImportResult(BaseModel):
    imported: int
    total: int
    mode: str
    header: Header


async def _parse_upload(file: UploadFile) -> ParsedXml:
    """Read and parse an upload, mapping every failure to HTTP 400."""
    raw = await file.read()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Uploaded file is empty",
        )
    try:
        return parse_xml(read_xml_upload(raw))
    except XmlParseError as exc:
        logger.warning("XML upload rejected file='%s': %s", file.filename, exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc


# ---------------------------------------------------------------------------
# GET /export
# ---------------------------------------------------------------------------


@router.get(
    "/export",
    summary="Export records as XML",
    response_class=StreamingResponse,
    responses={
        200: {"description": "XML document.", "content": {"application/xml": {}}},
        422: {"description": "Validation failed; body lists the issues."},
    },
)
def export_xml(
    storage: Annotated[StoragePort, Depends(get_user_storage)],
):
    header = storage.load_header()
    records = storage.load_records()
    issues = validate_all(header, records)
    if issues:
        logger.info("XML export blocked: user=%s issues=%d", storage.user_id, len(issues))
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Validation failed",
                "issues": [issue.model_dump() for issue in issues],
            },
        )

    payload = generate_xml(header, records).encode("utf-8")
    filename = export_filename()
    logger.info("XML export: user=%s records=%d file=%s", storage.user_id, len(records), filename)
    return StreamingResponse(
        io.BytesIO(payload),
        media_type="application/xml",
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Content-Length": str(len(payload)),
        },
    )


# ---------------------------------------------------------------------------
# POST /import
# ---------------------------------------------------------------------------


@router.post(
    "/import",
    response_model=ImportResult,
    summary="Import an XML file",
    responses={400: {"description": "Malformed XML; nothing was stored."}},
)
async def import_xml(
    file: Annotated[UploadFile, File(description="Commitments XML document")],
    storage: Annotated[StoragePort, Depends(get_user_storage)],
    store: Annotated[KeyValueStore, Depends(get_store)],
    mode: Annotated[Literal["replace", "append"], Query()] = "replace",
) -> ImportResult:
    """Store the parsed document.

    ``replace`` overwrites header and records; ``append`` keeps the header
    and adds the parsed records after the existing ones.
    """
    parsed = await _parse_upload(file)
    records = record_service.import_parsed(storage, parsed, mode, store)
    return ImportResult(
        imported=parsed.record_count,
        total=len(records),
        mode=mode,
        header=storage.load_header(),
    )


# ---------------------------------------------------------------------------
# POST /verify and /compare
# ---------------------------------------------------------------------------


@router.post("/verify", response_model=XmlSummary, summary="Verify an XML file")
async def verify_xml(
    file: Annotated[UploadFile, File(description="Commitments XML document")],
) -> XmlSummary:
    return xml_verification.summarize(await _parse_upload(file))


@router.post("/compare", response_model=XmlComparison, summary="Compare an XML file with stored records")
async def compare_xml(
    file: Annotated[UploadFile, File(description="Commitments XML document")],
    storage: Annotated[StoragePort, Depends(get_user_storage)],
) -> XmlComparison:
    parsed = await _parse_upload(file)
    return xml_verification.compare_with_app(parsed, storage.load_header(), storage.load_records())
