"""
app/services/report_ingestion_service.py

Decode one uploaded report file and record the outcome.

Every file produces exactly one committed ReportFile outcome: a
``completed`` row carrying the parsed payload, or a ``failed`` row carrying
the reason. Parse failures are returned, not raised, so one bad file never
aborts the rest of a batch. Database failures are raised.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from functools import lru_cache

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_dialer_ingestion_settings
from app.domain.report_catalog import ReportCategory
from app.domain.report_rows import ParsedReport
from app.parsers import ParseError, ReportParser
from db.repositories.report_repository import ReportRepository

logger = logging.getLogger(__name__)

FILE_TOO_LARGE = "file_too_large"
EMPTY_FILE = "empty_file"


class ReportPersistenceError(RuntimeError):
    """
    Raised when the outcome of an ingestion cannot be written.

    The session has been rolled back before this exception is raised.
    """


@dataclass(frozen=True)
class IngestSuccess:
    report_id: uuid.UUID
    filename: str
    category: ReportCategory
    report_date: date
    row_count: int
    parsed: ParsedReport

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class IngestFailure:
    filename: str
    error_code: str
    error_message: str
    category: ReportCategory | None = None
    report_date: date | None = None

    @property
    def ok(self) -> bool:
        return False


IngestResult = IngestSuccess | IngestFailure


class ReportIngestionService:
    """
    Parses a file and commits its ReportFile outcome.

    The parser is stateless and shared; the session is supplied per call.
    """

    def __init__(self, parser: ReportParser | None = None, *, max_file_bytes: int | None = None) -> None:
        self._parser = parser or ReportParser()
        self._max_file_bytes = max_file_bytes

    def ingest(self, db: Session, content: bytes, filename: str, source: str) -> IngestResult:
        """
        Parse *content* and upsert the result under its (date, category) key.

        Raises
        ------
        ReportPersistenceError
            If the success or failure row cannot be committed.
        """
        rejection = self._reject_before_parse(content, filename)
        if rejection is not None:
            self._record_failure(db, rejection, source=source)
            return rejection

        try:
            parsed = self._parser.parse(content, filename)
        except ParseError as exc:
            failure = IngestFailure(
                filename=filename,
                error_code=exc.code,
                error_message=str(exc),
                category=exc.category,
                report_date=exc.report_date,
            )
            logger.warning(
                "Report rejected filename=%r code=%s: %s", filename, failure.error_code, exc
            )
            self._record_failure(db, failure, source=source)
            return failure

        repository = ReportRepository(db)
        try:
            row = repository.upsert_completed(parsed=parsed, source=source)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Storing report failed filename=%r: %s", filename, exc, exc_info=True)
            raise ReportPersistenceError(f"Failed to store report {filename!r}: {exc}") from exc

        logger.info(
            "Report stored filename=%r category=%s date=%s rows=%d source=%s",
            filename,
            parsed.category.value,
            parsed.report_date.isoformat(),
            parsed.row_count,
            source,
        )
        return IngestSuccess(
            report_id=row.id,
            filename=filename,
            category=parsed.category,
            report_date=parsed.report_date,
            row_count=parsed.row_count,
            parsed=parsed,
        )

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _reject_before_parse(self, content: bytes, filename: str) -> IngestFailure | None:
        if not content:
            return IngestFailure(filename=filename, error_code=EMPTY_FILE, error_message="File is empty.")
        if self._max_file_bytes is not None and len(content) > self._max_file_bytes:
            return IngestFailure(
                filename=filename,
                error_code=FILE_TOO_LARGE,
                error_message=f"File is {len(content)} bytes; the limit is {self._max_file_bytes}.",
            )
        return None

    def _record_failure(self, db: Session, failure: IngestFailure, *, source: str) -> None:
        repository = ReportRepository(db)
        try:
            stored = repository.record_failure(
                filename=failure.filename,
                source=source,
                error_message=f"{failure.error_code}: {failure.error_message}",
                category=failure.category,
                report_date=failure.report_date,
            )
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error(
                "Recording failed report filename=%r: %s", failure.filename, exc, exc_info=True
            )
            raise ReportPersistenceError(
                f"Failed to record failure for {failure.filename!r}: {exc}"
            ) from exc
        if stored is None:
            logger.info(
                "Kept existing completed report for category=%s date=%s; failed re-send %r ignored",
                failure.category.value if failure.category else None,
                failure.report_date,
                failure.filename,
            )


@lru_cache(maxsize=1)
def get_report_ingestion_service() -> ReportIngestionService:
    settings = get_dialer_ingestion_settings()
    return ReportIngestionService(max_file_bytes=settings.max_file_bytes)
