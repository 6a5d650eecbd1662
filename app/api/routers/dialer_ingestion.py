"""
app/api/routers/dialer_ingestion.py

Report ingestion HTTP endpoints: the email webhook and manual uploads.
"""

from __future__ import annotations

import base64
import binascii
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import require_ingest_api_key
from app.config import DialerIngestionSettings, get_dialer_ingestion_settings
from app.schemas.dialer import (
    ChecklistResponse,
    DateResultResponse,
    EmailIngestRequest,
    FileResultResponse,
    IngestResponse,
    KPISummaryResponse,
)
from app.services.batch_ingestion_service import (
    BatchIngestionService,
    BatchResult,
    BatchTooLargeError,
    IncomingFile,
    get_batch_ingestion_service,
)
from app.services.kpi_orchestrator import KPIAggregationError, KPIPersistenceError
from app.services.report_ingestion_service import IngestSuccess, ReportPersistenceError
from db.models.report_file import ReportSource
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dialer", tags=["dialer-ingestion"])


@router.post(
    "/ingest",
    response_model=IngestResponse,
    dependencies=[Depends(require_ingest_api_key)],
)
def ingest_email(
    payload: EmailIngestRequest,
    db: Session = Depends(get_db),
    batch_service: BatchIngestionService = Depends(get_batch_ingestion_service),
) -> IngestResponse:
    """
    Ingest report attachments forwarded from the dialer's email export.
    """

    attachments = payload.all_attachments()
    if not attachments:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No attachments in request.",
        )

    files: list[IncomingFile] = []
    rejected: list[FileResultResponse] = []
    for attachment in attachments:
        try:
            # MIME encoders wrap base64 at 76 characters.
            content = base64.b64decode("".join(attachment.data.split()), validate=True)
        except (binascii.Error, ValueError):
            rejected.append(
                FileResultResponse(
                    filename=attachment.filename,
                    status="failed",
                    error_code="invalid_encoding",
                    error="Attachment data is not valid base64.",
                )
            )
            continue
        files.append(IncomingFile(filename=attachment.filename, content=content))

    logger.info(
        "Email ingest sender=%r subject=%r attachments=%d undecodable=%d",
        payload.sender,
        payload.subject,
        len(attachments),
        len(rejected),
    )
    return _run_batch(db, batch_service, files, ReportSource.EMAIL, rejected)


@router.post("/upload", response_model=IngestResponse)
def upload_reports(
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    batch_service: BatchIngestionService = Depends(get_batch_ingestion_service),
    settings: DialerIngestionSettings = Depends(get_dialer_ingestion_settings),
) -> IngestResponse:
    """
    Ingest one or more report files uploaded by hand.

    Limits are enforced before any file is read: an oversized batch is
    rejected whole, and at most ``max_file_bytes + 1`` bytes are read per
    file so an oversized file is recorded as too large without being
    buffered.
    """

    if len(files) > settings.max_files_per_batch:
        for upload in files:
            upload.file.close()
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Batch has {len(files)} files; at most {settings.max_files_per_batch} are accepted.",
        )

    incoming: list[IncomingFile] = []
    try:
        for upload in files:
            incoming.append(
                IncomingFile(
                    filename=upload.filename or "upload",
                    content=_read_bounded(upload, settings.max_file_bytes),
                )
            )
    finally:
        for upload in files:
            upload.file.close()

    return _run_batch(db, batch_service, incoming, ReportSource.MANUAL, [])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _read_bounded(upload: UploadFile, max_bytes: int) -> bytes:
    if upload.size is not None and upload.size > max_bytes:
        logger.warning(
            "Upload filename=%r size=%d exceeds limit=%d; reading prefix only",
            upload.filename,
            upload.size,
            max_bytes,
        )
    return upload.file.read(max_bytes + 1)


def _run_batch(
    db: Session,
    batch_service: BatchIngestionService,
    files: list[IncomingFile],
    source: str,
    rejected: list[FileResultResponse],
) -> IngestResponse:
    try:
        result = batch_service.process(db, files, source) if files else BatchResult(results=(), dates=())
    except BatchTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except ReportPersistenceError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to store report files.",
        ) from exc
    except (KPIAggregationError, KPIPersistenceError) as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Reports were stored but KPI computation failed.",
        ) from exc

    response = _to_response(result, source, rejected)
    if response.parsed == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "No report could be parsed.",
                "files": [item.model_dump(by_alias=True, mode="json") for item in response.files],
            },
        )
    return response


def _to_response(result: BatchResult, source: str, rejected: list[FileResultResponse]) -> IngestResponse:
    files = list(rejected)
    for item in result.results:
        if isinstance(item, IngestSuccess):
            files.append(
                FileResultResponse(
                    filename=item.filename,
                    status="completed",
                    category=item.category.value,
                    report_date=item.report_date,
                    row_count=item.row_count,
                )
            )
        else:
            files.append(
                FileResultResponse(
                    filename=item.filename,
                    status="failed",
                    category=item.category.value if item.category else None,
                    report_date=item.report_date,
                    error_code=item.error_code,
                    error=item.error_message,
                )
            )

    dates = []
    for outcome in result.dates:
        kpis = None
        if outcome.computation is not None:
            metrics = outcome.computation.metrics
            kpis = KPISummaryResponse(
                total_transfers=metrics["total_transfers"],
                transfers_per_hour=metrics["transfers_per_hour"],
                connect_rate=metrics["connect_rate"],
                conversion_rate=metrics["conversion_rate"],
                delta_transfers=metrics.get("delta_transfers"),
                delta_tph=metrics.get("delta_tph"),
                alerts_created=outcome.computation.alerts_created,
            )
        dates.append(
            DateResultResponse(
                date=outcome.report_date,
                computed=outcome.computed,
                checklist=ChecklistResponse.from_status(outcome.checklist),
                kpis=kpis,
            )
        )

    return IngestResponse(
        source=source,
        parsed=len(result.successes),
        failed=len(result.failures) + len(rejected),
        files=files,
        report_dates=[outcome.report_date for outcome in result.dates],
        dates=dates,
    )
