from __future__ import annotations

from dataclasses import dataclass, field

"""Config dataclasses for the group ingestion pipeline.

These are the typed form of config/import.yml after schema validation.
The loader in group_ingest.config.loader builds them; services only ever
see these frozen objects.
"""

__all__ = [
    "DatabaseConfig",
    "SourceConfig",
    "ClassificationConfig",
    "StorageConfig",
    "ImportConfig",
]


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables (and .env) take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class SourceConfig:
    """One named tabular source (a workbook sheet or a delimited file).

    `name` is the source-sheet label that ends up in provenance, ids and
    classification. `sheet` selects the physical sheet inside a workbook and
    defaults to `name`.
    """
    name: str
    path: str
    sheet: str | None = None
    header_row: int = 0  # 0-based index of the header line
    category: str | None = None  # human readable label overriding the sheet name
    columns: dict[str, tuple[str, ...]] = field(default_factory=dict)  # logical field -> candidates
    all_sheets: bool = False  # workbook only: expand to every sheet

    @property
    def sheet_name(self) -> str:
        return self.sheet or self.name

    @property
    def is_workbook(self) -> bool:
        return self.path.lower().endswith((".xlsx", ".xlsm", ".xls"))


@dataclass(frozen=True)
class ClassificationConfig:
    """Tunable parts of the classification rules."""
    member_threshold: int = 50_000
    high_scrutiny_sheets: tuple[str, ...] = ("right wing",)
    affiliation_sheets: tuple[str, ...] = ("right hindu",)
    categories: dict[str, str] = field(default_factory=dict)  # sheet label -> category label
    generic_sheets: tuple[str, ...] = ()  # extra sheet labels that carry no category meaning


@dataclass(frozen=True)
class StorageConfig:
    table: str = "groups"
    create_table: bool = False


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for one pipeline run."""
    sources: tuple[SourceConfig, ...]
    columns: dict[str, tuple[str, ...]] = field(default_factory=dict)  # global candidate overrides
    null_sentinels: frozenset[str] = frozenset()  # 既定セットへの追加分 (casefold 済)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logs_dir: str = "./logs"
