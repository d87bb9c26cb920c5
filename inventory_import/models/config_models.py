from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the CSV import tool.

Built by inventory_import.config.loader from config/import.yml. Environment
variables take precedence over DatabaseConfig when connecting.
"""

DEFAULT_PRODUCT_BATCH_SIZE = 100
DEFAULT_ORDER_SOURCE = "csv_import"
DEFAULT_ERROR_LOG_DIR = "./logs"


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportSettings:
    """Tunables of the import pipeline."""
    product_batch_size: int = DEFAULT_PRODUCT_BATCH_SIZE
    error_log_dir: str = DEFAULT_ERROR_LOG_DIR
    order_source: str = DEFAULT_ORDER_SOURCE


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    settings: ImportSettings = field(default_factory=ImportSettings)
