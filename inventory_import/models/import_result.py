from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any

from .record_kind import ImportRecordKind

"""Result models for one CSV import run.

ImportResult is the sole structure surfaced to callers (CLI, UI bindings,
tests). PersistenceOutcome is the internal result of the batch importer before
it is merged with the validation errors.
"""

__all__ = [
    "ImportResult",
    "PersistenceOutcome",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class PersistenceOutcome:
    """Counts and messages collected while writing accepted records.

    For the orders path the counts are customer groups, not CSV lines.
    """
    successful_rows: int
    failed_rows: int
    errors: list[str] = field(default_factory=list)
    # 永続化できたレコード (orders は注文単位のサマリ)
    persisted: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class ImportResult:
    """Aggregated outcome of one import (success iff successful_rows > 0).

    failed_rows = rejected CSV lines + failed persistence units. For products
    and inventory the units are lines, so successful_rows + failed_rows ==
    total_rows. For orders:

        total_rows      = CSV lines
        successful_rows = customer groups fully persisted (header + items)
        failed_rows     = rejected lines + (customer groups - successful_rows)

    so the sum is not total_rows whenever a group holds more than one line.
    """
    success: bool
    total_rows: int
    successful_rows: int
    failed_rows: int
    errors: list[str]
    kind: ImportRecordKind = ImportRecordKind.UNKNOWN
    data: list[dict[str, Any]] | None = None
    elapsed_seconds: float = 0.0

    @classmethod
    def failure(cls, message: str, kind: ImportRecordKind = ImportRecordKind.UNKNOWN) -> ImportResult:
        """Result for failures that happen before rows could be counted."""
        return cls(
            success=False,
            total_rows=0,
            successful_rows=0,
            failed_rows=0,
            errors=[message],
            kind=kind,
        )

    def to_dict(self) -> dict[str, Any]:
        """camelCase mapping matching the result shape the UI consumes."""
        out: dict[str, Any] = {
            "success": self.success,
            "totalRows": self.total_rows,
            "successfulRows": self.successful_rows,
            "failedRows": self.failed_rows,
            "errors": list(self.errors),
            "csvType": self.kind.value,
        }
        if self.data is not None:
            out["data"] = self.data
        return out


class BatchStatsAccumulator:
    """Helper class to accumulate batch timing statistics.

    Collects individual batch timing data and calculates summary statistics.
    """

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        """Add a batch timing measurement."""
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Calculate batch statistics.

        Returns:
            tuple: (total_batches, avg_batch_seconds, p95_batch_seconds)
        """
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 quantiles = p95
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
