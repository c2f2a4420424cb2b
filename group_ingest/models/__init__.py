"""Domain models for the group ingestion pipeline.

This package contains the domain model classes used throughout the application:
configuration, raw rows, canonical groups, write intents and run results.
"""

from .config_models import (
    ClassificationConfig,
    DatabaseConfig,
    ImportConfig,
    SourceConfig,
    StorageConfig,
)
from .group import CanonicalGroup, Contact, GroupStatus, GroupType, NameOrigin, RiskLevel
from .processing_result import RunResult, SourceStat, SourceStatus
from .row_data import RawRow
from .upsert_intent import UpsertAction, UpsertIntent, WriteFailure, WriteReport

__all__ = [
    # Configuration models
    "ClassificationConfig",
    "DatabaseConfig",
    "ImportConfig",
    "SourceConfig",
    "StorageConfig",
    # Entity models
    "CanonicalGroup",
    "Contact",
    "GroupStatus",
    "GroupType",
    "NameOrigin",
    "RiskLevel",
    "RawRow",
    # Processing models
    "RunResult",
    "SourceStat",
    "SourceStatus",
    "UpsertAction",
    "UpsertIntent",
    "WriteFailure",
    "WriteReport",
]
