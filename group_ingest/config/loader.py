from __future__ import annotations

import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.config_models import (
    ClassificationConfig,
    DatabaseConfig,
    ImportConfig,
    SourceConfig,
    StorageConfig,
)
from ..services.normalizer import clean_text

"""Config loader.

Responsibilities:
- Load YAML (config/import.yml by default)
- Validate against the packaged JSON schema (unknown keys rejected)
- Apply defaults and build the frozen ImportConfig
- Resolve the database DSN (environment first, then config)
"""

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "ConfigError",
    "load_config",
    "parse_config",
    "resolve_dsn",
]

DEFAULT_CONFIG_PATH = Path("config/import.yml")
SCHEMA_PATH = Path(__file__).with_name("import_schema.json")


class ConfigError(Exception):
    pass


def _validate_config_schema(data: Any) -> None:
    """Validate raw config data against the JSON schema.

    Raises:
        ConfigError: schema file missing/invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        where = "/".join(str(p) for p in e.absolute_path) or "<root>"
        raise ConfigError(f"config validation failed at {where}: {e.message}") from e


def _labels(value: str | list[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _columns(raw: Mapping[str, Any] | None) -> dict[str, tuple[str, ...]]:
    return {name: _labels(labels) for name, labels in (raw or {}).items()}


def _source(raw: Mapping[str, Any]) -> SourceConfig:
    path = raw["path"]
    # name 省略時: sheet 名、なければファイル名 (拡張子なし)
    name = raw.get("name") or raw.get("sheet") or Path(path).stem
    name = clean_text(name)
    if not name:
        raise ConfigError(f"source {path!r} has an empty name")
    return SourceConfig(
        name=name,
        path=path,
        sheet=raw.get("sheet"),
        header_row=raw.get("header_row", 0),
        category=raw.get("category"),
        columns=_columns(raw.get("columns")),
        all_sheets=raw.get("all_sheets", False),
    )


def parse_config(data: Any) -> ImportConfig:
    """Validate already-parsed YAML data and build an ImportConfig."""
    if data is None:
        data = {}
    _validate_config_schema(data)

    cls_raw = data.get("classification", {})
    defaults = ClassificationConfig()
    classification = ClassificationConfig(
        member_threshold=cls_raw.get("member_threshold", defaults.member_threshold),
        high_scrutiny_sheets=tuple(cls_raw.get("high_scrutiny_sheets", defaults.high_scrutiny_sheets)),
        affiliation_sheets=tuple(cls_raw.get("affiliation_sheets", defaults.affiliation_sheets)),
        categories=dict(cls_raw.get("categories", {})),
        generic_sheets=tuple(cls_raw.get("generic_sheets", ())),
    )

    storage_raw = data.get("storage", {})
    storage = StorageConfig(
        table=storage_raw.get("table", "groups"),
        create_table=storage_raw.get("create_table", False),
    )

    db_raw = data.get("database", {})
    database = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    return ImportConfig(
        sources=tuple(_source(s) for s in data["sources"]),
        columns=_columns(data.get("columns")),
        null_sentinels=frozenset(clean_text(s).casefold() for s in data.get("null_sentinels", [])),
        classification=classification,
        storage=storage,
        database=database,
        logs_dir=data.get("logs_dir", "./logs"),
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    return parse_config(data)


def resolve_dsn(db: DatabaseConfig, environ: Mapping[str, str] | None = None) -> str:
    """Build the libpq DSN.

    Resolution order (.env is loaded into the environment beforehand with
    override, so it wins over pre-existing variables):
        1. DATABASE_URL / PGDSN
        2. config `database.dsn`
        3. PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE, each falling
           back to the matching config field, then to libpq defaults
    """
    env = os.environ if environ is None else environ
    dsn = env.get("DATABASE_URL") or env.get("PGDSN") or db.dsn
    if dsn:
        return dsn
    host = env.get("PGHOST") or db.host or "localhost"
    port = env.get("PGPORT") or (str(db.port) if db.port else "5432")
    user = env.get("PGUSER") or db.user or "postgres"
    password = env.get("PGPASSWORD") or db.password or ""
    database = env.get("PGDATABASE") or db.database or "postgres"
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn
