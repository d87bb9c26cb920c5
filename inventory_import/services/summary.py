from __future__ import annotations

from ..models.import_result import ImportResult, PersistenceOutcome
from ..models.record_kind import ImportRecordKind
from ..models.validation import ValidationReport

"""Import result aggregation and SUMMARY line rendering.

Validation errors always come before persistence errors in the merged list.
success is true iff at least one row (orders: one order) was persisted.
"""

__all__ = [
    "NO_VALID_ROWS",
    "aggregate",
    "no_valid_rows_result",
    "render_summary_line",
]

NO_VALID_ROWS = "No valid rows found"


def no_valid_rows_result(
    kind: ImportRecordKind, report: ValidationReport, elapsed_seconds: float = 0.0
) -> ImportResult:
    """Result for an input where validation accepted nothing.

    failed_rows equals total_rows and errors are the rejection messages (or
    the NO_VALID_ROWS sentinel when no rejection carried a message).
    """
    errors = report.errors or [NO_VALID_ROWS]
    return ImportResult(
        success=False,
        total_rows=report.total_rows,
        successful_rows=0,
        failed_rows=report.total_rows,
        errors=errors,
        kind=kind,
        elapsed_seconds=elapsed_seconds,
    )


def aggregate(
    kind: ImportRecordKind,
    report: ValidationReport,
    outcome: PersistenceOutcome,
    elapsed_seconds: float = 0.0,
) -> ImportResult:
    """Merge validation and persistence results into the caller-facing result.

    failed_rows = rejected rows + failed persistence units. For products and
    inventory this keeps successful + failed == total; for orders the
    persistence counts are customer groups while total_rows stays a line count.
    """
    if not report.accepted:
        return no_valid_rows_result(kind, report, elapsed_seconds)

    successful = outcome.successful_rows
    return ImportResult(
        success=successful > 0,
        total_rows=report.total_rows,
        successful_rows=successful,
        failed_rows=len(report.rejected) + outcome.failed_rows,
        errors=report.errors + list(outcome.errors),
        kind=kind,
        data=list(outcome.persisted) if successful > 0 else None,
        elapsed_seconds=elapsed_seconds,
    )


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # 指数表記を避ける
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: ImportResult) -> str:
    """Render the SUMMARY line for one import.

    Format:
    SUMMARY kind={kind} rows={total} success={ok} failed={failed} errors={n} elapsed_sec={s}

    Examples:
        >>> r = ImportResult(success=True, total_rows=3, successful_rows=2, failed_rows=1,
        ...                  errors=["Row 3: SKU is required"], kind=ImportRecordKind.PRODUCTS,
        ...                  elapsed_seconds=1.5)
        >>> render_summary_line(r)
        'SUMMARY kind=products rows=3 success=2 failed=1 errors=1 elapsed_sec=1.5'
    """
    return (
        f"SUMMARY kind={result.kind.value} "
        f"rows={result.total_rows} "
        f"success={result.successful_rows} "
        f"failed={result.failed_rows} "
        f"errors={len(result.errors)} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )
