from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .group import CanonicalGroup, NameOrigin
from .upsert_intent import UpsertAction, UpsertIntent, WriteReport

"""Processing result models for the group ingestion pipeline.

SourceStat carries the per-source audit counters; RunResult aggregates a
whole run (sources, final groups, write plan and write outcome).
"""

__all__ = [
    "SourceStatus",
    "SourceStat",
    "RunResult",
]


class SourceStatus(Enum):
    """Status of one source after reading.

    - SUCCESS: source was read (it may still have contributed zero rows)
    - UNAVAILABLE: file/sheet missing or unreadable, contributed zero rows
    """
    SUCCESS = "success"
    UNAVAILABLE = "unavailable"


@dataclass
class SourceStat:
    """Per-source audit counters.

    rows_read counts every data row including empty ones, so
    rows_read == explicit + derived + synthetic + dropped always holds.
    """
    source: str  # ソースファイルパス
    sheet: str  # Source-sheet label
    status: SourceStatus = SourceStatus.SUCCESS
    rows_read: int = 0
    explicit: int = 0  # nameOrigin EXPLICIT
    derived: int = 0  # nameOrigin DERIVED_FROM_URL
    synthetic: int = 0  # nameOrigin SYNTHETIC_PLACEHOLDER
    dropped: int = 0  # completely empty rows (RowMalformed)
    elapsed_seconds: float = 0.0
    error: str | None = None

    def count_origin(self, origin: NameOrigin) -> None:
        if origin is NameOrigin.EXPLICIT:
            self.explicit += 1
        elif origin is NameOrigin.DERIVED_FROM_URL:
            self.derived += 1
        else:
            self.synthetic += 1

    @property
    def emitted(self) -> int:
        return self.explicit + self.derived + self.synthetic


@dataclass(frozen=True)
class RunResult:
    """Aggregated result of one pipeline run (audit + write outcome)."""
    start_time: datetime  # 全体開始
    end_time: datetime  # 全体終了
    elapsed_seconds: float
    sources: list[SourceStat]
    groups: list[CanonicalGroup]  # deduplicated, first-seen order
    collapsed_duplicates: int
    intents: list[UpsertIntent]
    writes: WriteReport = field(default_factory=WriteReport)
    dry_run: bool = False

    @property
    def unavailable_sources(self) -> list[SourceStat]:
        return [s for s in self.sources if s.status is SourceStatus.UNAVAILABLE]

    @property
    def rows_read(self) -> int:
        return sum(s.rows_read for s in self.sources)

    @property
    def planned_inserts(self) -> int:
        return sum(1 for i in self.intents if i.action is UpsertAction.INSERT)

    @property
    def planned_skips(self) -> int:
        return sum(1 for i in self.intents if i.action is UpsertAction.SKIP)

    @property
    def has_failures(self) -> bool:
        return bool(self.unavailable_sources) or bool(self.writes.failures)
