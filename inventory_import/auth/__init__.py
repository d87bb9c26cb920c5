"""Session context and permission evaluation."""

from .permissions import (
    IMPORT_PERMISSIONS,
    PermissionDeniedError,
    PermissionEvaluator,
    can_perform,
    has_all_roles,
    has_any_role,
    require,
    require_import,
)
from .session import SessionContext, load_session, refresh_session

__all__ = [
    "IMPORT_PERMISSIONS",
    "PermissionDeniedError",
    "PermissionEvaluator",
    "SessionContext",
    "can_perform",
    "has_all_roles",
    "has_any_role",
    "load_session",
    "refresh_session",
    "require",
    "require_import",
]
