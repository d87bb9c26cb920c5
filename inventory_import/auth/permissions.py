from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ..models.permission import CRUD_ACTIONS, Permission, Role
from ..models.record_kind import ImportRecordKind

if TYPE_CHECKING:
    from .session import SessionContext

"""Permission evaluation.

PermissionEvaluator answers the two primitive questions (explicit grant,
role equality). The access policy is composed on top of it in can_perform():

    explicit grant  OR  (role in {admin, manager} AND action is CRUD)

Non-CRUD verbs (approve, manage, ...) need an explicit grant for every role.

Role shortcuts are derived here and never written back into the permission
set, so the stored tuples only ever reflect what was actually granted.
"""

__all__ = [
    "IMPORT_PERMISSIONS",
    "PermissionDeniedError",
    "PermissionEvaluator",
    "can_perform",
    "require",
    "require_import",
    "has_any_role",
    "has_all_roles",
]

# 取込種別ごとに必要な (resource, action)
IMPORT_PERMISSIONS: dict[ImportRecordKind, tuple[str, str]] = {
    ImportRecordKind.PRODUCTS: ("products", "create"),
    ImportRecordKind.INVENTORY: ("inventory", "update"),
    ImportRecordKind.ORDERS: ("orders", "create"),
}


class PermissionDeniedError(Exception):
    """Raised by require() when the policy denies (resource, action)."""

    def __init__(self, resource: str, action: str) -> None:
        super().__init__(f"Permission denied: {action} on {resource}")
        self.resource = resource
        self.action = action


class PermissionEvaluator:
    """Offline evaluator over one (role, permission set) snapshot."""

    def __init__(self, role: Role, permissions: Iterable[Permission]) -> None:
        self._role = role
        self._permissions = frozenset(permissions)

    @classmethod
    def for_session(cls, session: SessionContext) -> PermissionEvaluator:
        return cls(session.role, session.permissions)

    @property
    def role(self) -> Role:
        return self._role

    def has_permission(self, resource: str, action: str) -> bool:
        """True iff a granted tuple matches (resource, action) exactly."""
        return any(p.matches(resource, action) for p in self._permissions)

    def has_role(self, role: Role | str) -> bool:
        if not isinstance(role, Role):
            try:
                role = Role(role)
            except ValueError:
                return False
        return self._role is role

    def is_admin(self) -> bool:
        return self._role is Role.ADMIN

    def is_manager(self) -> bool:
        return self._role is Role.MANAGER

    def is_manager_or_admin(self) -> bool:
        return self.is_admin() or self.is_manager()


def can_perform(session: SessionContext, resource: str, action: str) -> bool:
    evaluator = PermissionEvaluator.for_session(session)
    if evaluator.has_permission(resource, action):
        return True
    return evaluator.is_manager_or_admin() and action in CRUD_ACTIONS


def require(session: SessionContext, resource: str, action: str) -> None:
    """Raise PermissionDeniedError unless can_perform() allows the action."""
    if not can_perform(session, resource, action):
        raise PermissionDeniedError(resource, action)


def require_import(session: SessionContext, kind: ImportRecordKind) -> None:
    """Gate an import of `kind` (see IMPORT_PERMISSIONS).

    Raises:
        PermissionDeniedError: the session may not import this kind
        ValueError: kind is UNKNOWN
    """
    try:
        resource, action = IMPORT_PERMISSIONS[kind]
    except KeyError:
        raise ValueError(f"no import permission for kind '{kind.value}'") from None
    require(session, resource, action)


def has_any_role(session: SessionContext, roles: Iterable[Role | str]) -> bool:
    evaluator = PermissionEvaluator.for_session(session)
    return any(evaluator.has_role(r) for r in roles)


def has_all_roles(session: SessionContext, roles: Iterable[Role | str]) -> bool:
    """Roles are single-valued, so this holds only when every entry names the session role."""
    evaluator = PermissionEvaluator.for_session(session)
    return all(evaluator.has_role(r) for r in roles)
