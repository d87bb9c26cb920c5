from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines import error log.

One record per rejected CSV row or failed persistence unit. A failed products
batch or order group is recorded against its first CSV line; row=-1 marks
errors that are not tied to any line (inventory upsert, file level).
"""

__all__ = [
    "ErrorRecord",
    "ROW_UNKNOWN",
]

ROW_UNKNOWN = -1


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        source: CSV file name (or "<memory>" for in-process content)
        kind: detected import kind ("products", "inventory", ...)
        row: CSV line number (header = 1). -1 when no single row applies
        error_type: Error classification in UPPER_SNAKE_CASE format
        message: human readable message, identical to the ImportResult entry
    """
    timestamp: str
    source: str
    kind: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(source: str, kind: str, row: int, error_type: str, message: str) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            source=source,
            kind=kind,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        """Serialize to one JSON line (no keys beyond the dataclass fields)."""
        return json.dumps(asdict(self), ensure_ascii=False)
