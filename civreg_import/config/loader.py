from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for config/import.yml.

Responsibilities:
- Load YAML config
- Validate against the packaged JSON schema (unknown keys rejected)
- Apply defaults (lookup chunk size / workers, upsert page size)

Database connection values here are the last fallback; the CLI resolves
.env and process environment first.
"""

_CONFIG_DIR = Path(__file__).parent
SCHEMA_PATH = _CONFIG_DIR / "config_schema.json"
DEFAULT_CONFIG_PATH = Path("config/import.yml")

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_MAX_WORKERS = 4
DEFAULT_PAGE_SIZE = 1000


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DatabaseConfig:
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class ImportConfig:
    source_directory: str
    default_kind: str | None = None
    header_row: int = 0  # 0-based row holding the column headers
    chunk_size: int = DEFAULT_CHUNK_SIZE  # keys per store lookup
    max_workers: int = DEFAULT_MAX_WORKERS  # parallel lookup chunks
    upsert_page_size: int = DEFAULT_PAGE_SIZE
    date_prefixes: tuple[str, ...] | None = None  # None = built-in prefix list
    entity_overrides: dict[str, Any] = field(default_factory=dict)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)


def validate_against_schema(data: Any, schema_path: Path) -> None:
    """Validate ``data`` against a JSON schema file.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or if
            the data fails schema validation.
    """
    if not schema_path.exists():
        raise ConfigError(f"config schema not found: {schema_path}")

    try:
        schema = json.loads(schema_path.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def read_yaml(path: Path) -> Any:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    data = read_yaml(path)
    validate_against_schema(data, SCHEMA_PATH)

    lookup = data.get("lookup") or {}
    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )
    prefixes = data.get("date_prefixes")
    return ImportConfig(
        source_directory=data["source_directory"],
        default_kind=data.get("default_kind"),
        header_row=data.get("header_row", 0),
        chunk_size=lookup.get("chunk_size", DEFAULT_CHUNK_SIZE),
        max_workers=lookup.get("max_workers", DEFAULT_MAX_WORKERS),
        upsert_page_size=data.get("upsert_page_size", DEFAULT_PAGE_SIZE),
        date_prefixes=tuple(prefixes) if prefixes is not None else None,
        entity_overrides=data.get("entities") or {},
        database=db,
    )
