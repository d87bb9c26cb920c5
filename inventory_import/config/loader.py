from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    DEFAULT_ERROR_LOG_DIR,
    DEFAULT_ORDER_SOURCE,
    DEFAULT_PRODUCT_BATCH_SIZE,
    DatabaseConfig,
    ImportConfig,
    ImportSettings,
)

"""Config loader.

Responsibilities:
- Load YAML config (default: config/import.yml)
- Validate against the JSON schema shipped next to this module
- Apply defaults for every optional key
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing / not valid JSON, or the
            config data fails schema validation.
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")

    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def load_config(path: Path) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    imp_raw = data.get("import") or {}
    settings = ImportSettings(
        product_batch_size=imp_raw.get("product_batch_size", DEFAULT_PRODUCT_BATCH_SIZE),
        error_log_dir=imp_raw.get("error_log_dir", DEFAULT_ERROR_LOG_DIR),
        order_source=imp_raw.get("order_source", DEFAULT_ORDER_SOURCE),
    )
    return ImportConfig(database=db, settings=settings)


def load_config_or_default(path: Path) -> ImportConfig:
    """Like load_config, but a missing file yields the built-in defaults.

    An existing but invalid file still raises ConfigError.
    """
    if not path.exists():
        return ImportConfig()
    return load_config(path)
