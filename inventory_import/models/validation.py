from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from .records import NormalizedRecord

"""Validation outcome models.

Every RawRow yields exactly one outcome: Accepted(record) or
Rejected(row_number, reason). Rejections are never merged; a row contributes
at most one message (validation short-circuits at the first failing rule).
"""

__all__ = [
    "Accepted",
    "Rejected",
    "ValidationOutcome",
    "ValidationReport",
]


@dataclass(frozen=True)
class Accepted:
    record: NormalizedRecord


@dataclass(frozen=True)
class Rejected:
    row_number: int
    reason: str

    @property
    def message(self) -> str:
        return f"Row {self.row_number}: {self.reason}"


ValidationOutcome = Union[Accepted, Rejected]


@dataclass
class ValidationReport:
    """Accepted records and rejections of one validation pass, in input order."""
    accepted: list[NormalizedRecord] = field(default_factory=list)
    rejected: list[Rejected] = field(default_factory=list)

    def add(self, outcome: ValidationOutcome) -> None:
        if isinstance(outcome, Accepted):
            self.accepted.append(outcome.record)
        else:
            self.rejected.append(outcome)

    @property
    def errors(self) -> list[str]:
        return [r.message for r in self.rejected]

    @property
    def total_rows(self) -> int:
        return len(self.accepted) + len(self.rejected)
