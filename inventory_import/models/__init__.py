"""Domain models for the inventory CSV import tool."""

from .config_models import DatabaseConfig, ImportConfig, ImportSettings
from .error_record import ErrorRecord
from .import_result import ImportResult, PersistenceOutcome
from .permission import CRUD_ACTIONS, Permission, Role
from .record_kind import ImportRecordKind
from .records import (
    ConsolidatedOrder,
    NormalizedInventoryRecord,
    NormalizedOrderLineRecord,
    NormalizedProductRecord,
    NormalizedRecord,
)
from .row_data import RowData
from .validation import Accepted, Rejected, ValidationReport

__all__ = [
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    "ImportSettings",
    # Pipeline models
    "ImportRecordKind",
    "RowData",
    "NormalizedProductRecord",
    "NormalizedInventoryRecord",
    "NormalizedOrderLineRecord",
    "NormalizedRecord",
    "ConsolidatedOrder",
    "Accepted",
    "Rejected",
    "ValidationReport",
    "PersistenceOutcome",
    "ImportResult",
    "ErrorRecord",
    # Authorization models
    "Permission",
    "Role",
    "CRUD_ACTIONS",
]
