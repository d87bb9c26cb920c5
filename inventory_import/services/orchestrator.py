from __future__ import annotations

import logging
import time

from ..auth.permissions import PermissionDeniedError, require_import
from ..auth.session import SessionContext
from ..db.store import DataStore
from ..logging.error_log import ErrorLogBuffer
from ..models.config_models import ImportConfig
from ..models.error_record import ROW_UNKNOWN, ErrorRecord
from ..models.import_result import ImportResult
from ..models.record_kind import ImportRecordKind
from ..tabular.reader import parse_csv
from .batch_importer import ImportContext, import_records
from .detector import detect
from .reference_resolver import ReferenceResolutionError, resolve
from .row_validator import validate
from .summary import aggregate, no_valid_rows_result

"""Import orchestration (public entry point).

import_csv() runs one import end to end:

    detect -> permission gate -> parse -> resolve -> validate -> persist -> aggregate

and always returns an ImportResult. Unknown formats and permission denials
come back as failures with total_rows=0 before anything is read from the
store; any other exception is reported as "Processing error: <message>".
"""

__all__ = [
    "DETECTION_FAILED_MESSAGE",
    "ImportProcessingError",
    "import_csv",
]

logger = logging.getLogger(__name__)

DETECTION_FAILED_MESSAGE = (
    "Unable to detect CSV format. Please ensure your CSV has the correct headers."
)


class ImportProcessingError(Exception):
    """Fatal error that stops an import before rows can be counted."""


class _ErrorSink:
    """Turns pipeline failures into ErrorRecords on an optional buffer."""

    def __init__(self, error_log: ErrorLogBuffer | None, source: str) -> None:
        self._error_log = error_log
        self._source = source
        self.kind = ImportRecordKind.UNKNOWN

    def __call__(self, row: int, error_type: str, message: str) -> None:
        if self._error_log is None:
            return
        self._error_log.append(
            ErrorRecord.create(
                source=self._source,
                kind=self.kind.value,
                row=row,
                error_type=error_type,
                message=message,
            )
        )


def _run(
    raw_text: str | bytes,
    store: DataStore,
    session: SessionContext,
    config: ImportConfig,
    sink: _ErrorSink,
    started: float,
) -> ImportResult:
    kind = detect(raw_text)
    sink.kind = kind
    if kind is ImportRecordKind.UNKNOWN:
        sink(ROW_UNKNOWN, "FORMAT_DETECTION_ERROR", DETECTION_FAILED_MESSAGE)
        return ImportResult.failure(DETECTION_FAILED_MESSAGE)

    try:
        require_import(session, kind)
    except PermissionDeniedError as e:
        sink(ROW_UNKNOWN, "PERMISSION_DENIED", str(e))
        logger.warning("user=%s %s", session.user_id, e)
        return ImportResult.failure(str(e), kind)

    rows = parse_csv(raw_text)
    logger.debug("detected kind=%s rows=%d", kind.value, len(rows))

    try:
        lookups = resolve(kind, store)
    except ReferenceResolutionError as e:
        raise ImportProcessingError(str(e)) from e

    report = validate(rows, kind, lookups)
    for rejected in report.rejected:
        sink(rejected.row_number, "ROW_VALIDATION_ERROR", rejected.message)

    if not report.accepted:
        return no_valid_rows_result(kind, report, time.perf_counter() - started)

    context = ImportContext(
        created_by=session.user_id,
        order_source=config.settings.order_source,
        product_batch_size=config.settings.product_batch_size,
        on_error=sink,
    )
    outcome = import_records(report.accepted, kind, store, context)
    return aggregate(kind, report, outcome, time.perf_counter() - started)


def import_csv(
    raw_text: str | bytes,
    store: DataStore,
    session: SessionContext,
    *,
    config: ImportConfig | None = None,
    source: str = "<memory>",
    error_log: ErrorLogBuffer | None = None,
) -> ImportResult:
    """Import one CSV document and report the outcome. Never raises.

    Args:
        raw_text: CSV content (str, or UTF-8 bytes)
        store: remote data store
        session: acting user's session context
        config: import settings (defaults when None)
        source: name recorded in error log entries
        error_log: buffer receiving one ErrorRecord per failure (optional)
    """
    started = time.perf_counter()
    sink = _ErrorSink(error_log, source)
    try:
        result = _run(raw_text, store, session, config or ImportConfig(), sink, started)
    except Exception as e:
        message = f"Processing error: {e}"
        logger.error("%s (source=%s)", message, source)
        logger.debug("import failed", exc_info=True)
        sink(ROW_UNKNOWN, "PROCESSING_ERROR", message)
        return ImportResult.failure(message, sink.kind)

    logger.info(
        "import source=%s kind=%s rows=%d ok=%d failed=%d",
        source,
        result.kind.value,
        result.total_rows,
        result.successful_rows,
        result.failed_rows,
    )
    return result

