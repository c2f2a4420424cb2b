from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .group import CanonicalGroup

"""Write intents produced by the upsert planner.

Only INSERT and SKIP exist: a plan cannot express an overwrite or a
removal of a stored row.
"""

__all__ = [
    "UpsertAction",
    "UpsertIntent",
    "WriteFailure",
    "WriteReport",
]


class UpsertAction(Enum):
    INSERT = "insert"
    SKIP = "skip"


@dataclass(frozen=True)
class UpsertIntent:
    action: UpsertAction
    group: CanonicalGroup

    @property
    def id(self) -> str:
        return self.group.id


@dataclass(frozen=True)
class WriteFailure:
    """A write the storage layer rejected (e.g. constraint violation)."""
    id: str
    sheet: str
    row: int
    message: str


@dataclass
class WriteReport:
    """Outcome of applying a plan. Ids are kept in plan order."""
    inserted: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failures: list[WriteFailure] = field(default_factory=list)

    @property
    def rejected(self) -> int:
        return len(self.failures)
