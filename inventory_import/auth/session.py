from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..db.store import DataStore
from ..models.permission import Permission, Role

"""Session context (current user, tenant, role and permission set).

A SessionContext is immutable and passed explicitly to every entry point.
Refreshing (login, tenant switch, explicit refresh) builds a new context; the
old one is never mutated, so readers holding a reference always see a
consistent (role, permissions) pair.
"""

__all__ = [
    "SessionContext",
    "load_session",
    "refresh_session",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionContext:
    user_id: str
    tenant_id: str | None = None
    role: Role = Role.USER
    permissions: frozenset[Permission] = field(default_factory=frozenset)

    @classmethod
    def build(
        cls,
        user_id: str,
        role: Role | str | None = None,
        permissions: list[Permission] | tuple[Permission, ...] | frozenset[Permission] = (),
        tenant_id: str | None = None,
    ) -> SessionContext:
        """Convenience constructor accepting a role string and any iterable of permissions."""
        if not isinstance(role, Role):
            role = Role.parse(role)
        return cls(user_id=user_id, tenant_id=tenant_id, role=role, permissions=frozenset(permissions))


def load_session(store: DataStore, user_id: str, tenant_id: str | None = None) -> SessionContext:
    """Fetch profile role and permission tuples for (user, tenant).

    A missing profile yields role USER. Store failures propagate as StoreError.
    """
    profile = store.fetch_profile(user_id)
    role = Role.parse(profile.get("role") if profile else None)
    permissions = frozenset(Permission.from_row(row) for row in store.fetch_permissions(user_id, tenant_id))
    logger.debug(
        "session loaded user=%s tenant=%s role=%s permissions=%d",
        user_id, tenant_id, role.value, len(permissions),
    )
    return SessionContext(user_id=user_id, tenant_id=tenant_id, role=role, permissions=permissions)


def refresh_session(
    store: DataStore, session: SessionContext, tenant_id: str | None = None
) -> SessionContext:
    """Reload role and permissions, optionally switching tenant.

    Returns a new SessionContext; `session` itself is left untouched.
    """
    target_tenant = tenant_id if tenant_id is not None else session.tenant_id
    return load_session(store, session.user_id, target_tenant)
