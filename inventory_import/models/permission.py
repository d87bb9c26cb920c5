from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Permission / Role domain models.

Permission tuples are loaded once per (user, tenant) and held in an immutable
SessionContext; a refresh replaces the whole set.
"""

__all__ = [
    "Role",
    "Permission",
    "CRUD_ACTIONS",
]

CRUD_ACTIONS = frozenset({"create", "read", "update", "delete"})


class Role(Enum):
    """Single role attached to a user profile."""
    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"

    @classmethod
    def parse(cls, value: str | None) -> Role:
        """Map a stored role string to Role; unknown / missing -> USER."""
        if not value:
            return cls.USER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.USER


@dataclass(frozen=True)
class Permission:
    resource: str
    action: str
    granted: bool = True

    @classmethod
    def from_row(cls, row: dict[str, object]) -> Permission:
        return cls(
            resource=str(row["resource"]),
            action=str(row["action"]),
            granted=bool(row.get("granted", True)),
        )

    def matches(self, resource: str, action: str) -> bool:
        """Exact (resource, action) match on a granted tuple; no wildcards."""
        return self.granted and self.resource == resource and self.action == action
