from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..excel.fields import DEFAULT_CLAIM_COLUMN_OFFSETS
from ..models.config_models import DatabaseConfig, ExtractionConfig, ImportConfig

"""Config loader.

- Load YAML (config/import.yml by default)
- Validate against contracts/config_schema.json
- Apply extraction defaults for every optional key
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "load_config",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")

# tsb_etl/config/loader.py -> tsb_etl/contracts/config_schema.json
SCHEMA_PATH = Path(__file__).parent.parent / "contracts" / "config_schema.json"


class ConfigError(Exception):
    pass


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the JSON schema.

    Raises:
        ConfigError: schema file missing or malformed, or data fails validation
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


def _extraction(data: dict[str, Any]) -> ExtractionConfig:
    kwargs: dict[str, Any] = {}
    if "branch_codes" in data:
        kwargs["branch_codes"] = tuple(str(code).strip() for code in data["branch_codes"])
    for key in ("company_type", "header_anchor", "header_scan_limit"):
        if key in data:
            kwargs[key] = data[key]
    # Partial offset tables override individual defaults
    offsets = dict(DEFAULT_CLAIM_COLUMN_OFFSETS)
    offsets.update(data.get("claim_column_offsets") or {})
    kwargs["claim_column_offsets"] = offsets
    return ExtractionConfig(**kwargs)


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
    return ImportConfig(
        source_directory=data["source_directory"],
        database=db,
        extraction=_extraction(data),
        combined_output=data.get("combined_output"),
    )
