from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader.

Responsibilities:
- Load the YAML config (config/arbolado.yml, or $ARBOLADO_CONFIG)
- Validate it against config_schema.json (unknown keys rejected)
- Apply defaults; a missing file means "all defaults"
"""

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/arbolado.yml")
CONFIG_ENV_VAR = "ARBOLADO_CONFIG"

# Hard-coded in the original tool; kept as named defaults
DEFAULT_BATCH_SIZE = 1000
DEFAULT_SIMILARITY_THRESHOLD = 0.85
DEFAULT_TABLE = "trees"
DEFAULT_MAX_UPLOAD_MB = 16


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection fallback; environment variables take precedence."""
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class AppConfig:
    table: str = DEFAULT_TABLE
    batch_size: int = DEFAULT_BATCH_SIZE
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    max_upload_mb: int = DEFAULT_MAX_UPLOAD_MB
    error_log_dir: str | None = None
    database: DatabaseConfig = DatabaseConfig()

    @property
    def error_log_path(self) -> Path | None:
        return Path(self.error_log_dir) if self.error_log_dir else None


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the bundled JSON schema.

    Raises:
        ConfigError: schema file missing or unreadable, or the data violates it
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


def resolve_config_path(path: Path | None = None) -> Path:
    if path is not None:
        return path
    env_path = os.getenv(CONFIG_ENV_VAR)
    return Path(env_path) if env_path else DEFAULT_CONFIG_PATH


def load_config(path: Path | None = None) -> AppConfig:
    path = resolve_config_path(path)
    if not path.exists():
        return AppConfig()
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config root must be a mapping: {path}")

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
    return AppConfig(
        table=data.get("table", DEFAULT_TABLE),
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        similarity_threshold=float(data.get("similarity_threshold", DEFAULT_SIMILARITY_THRESHOLD)),
        max_upload_mb=data.get("max_upload_mb", DEFAULT_MAX_UPLOAD_MB),
        error_log_dir=data.get("error_log_dir"),
        database=db,
    )
