from __future__ import annotations

from dataclasses import dataclass

"""RowData model (one parsed CSV data line).

RowData represents a single data line after header normalization. The
row_number is the line number as a spreadsheet user sees it: the header
occupies row 1, so the first data line is row 2.
"""

__all__ = [
    "RowData",
]


@dataclass(frozen=True)
class RowData:
    """Logical representation of a single CSV data line.

    values maps the normalized header name (lowercase, whitespace -> "_") to
    the stripped cell text. Missing trailing cells are "".
    """
    row_number: int  # 1-based line number incl. header (first data line = 2)
    values: dict[str, str]

    def get(self, column: str) -> str:
        """Return the stripped cell text, "" when the column is absent."""
        value = self.values.get(column)
        if value is None:
            return ""
        return value.strip()

    def has_value(self, column: str) -> bool:
        return self.get(column) != ""
