from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Sequence
from typing import Any, Protocol

import psycopg2
from psycopg2.extras import Json, execute_values

from ..models.group import PLATFORMS, CanonicalGroup

"""Group stores: the persistence side of the upsert plan.

Only two operations are needed, `existing_ids` and `insert`. Neither can
overwrite or delete a stored row: inserts use ON CONFLICT (id) DO NOTHING, so
an id that appeared concurrently surfaces as WriteConflictError and the
planner counts it as skipped.

PostgresGroupStore wraps every single-row insert in a SAVEPOINT so that one
rejected row (constraint violation, bad encoding) does not abort the whole
transaction. The caller owns the connection and commits.
"""

__all__ = [
    "GROUP_COLUMNS",
    "WriteConflictError",
    "WriteRejectedError",
    "GroupStore",
    "PostgresGroupStore",
    "InMemoryGroupStore",
]

logger = logging.getLogger(__name__)

_IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?")

GROUP_COLUMNS: tuple[str, ...] = (
    "id",
    "name",
    "name_origin",
    "type",
    "risk_level",
    "category",
    "sheet",
    "members",
    "platforms",
    "primary_platform",
    "description",
    "location",
    "contact_info",
    "social_media",
    "influencers",
    "status",
    "monitoring_enabled",
)

_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    name_origin TEXT NOT NULL,
    type TEXT NOT NULL,
    risk_level TEXT NOT NULL,
    category TEXT,
    sheet TEXT,
    members INTEGER NOT NULL DEFAULT 0,
    platforms JSONB NOT NULL DEFAULT '[]'::jsonb,
    primary_platform TEXT,
    description TEXT,
    location TEXT,
    contact_info JSONB,
    social_media JSONB,
    influencers TEXT,
    status TEXT NOT NULL DEFAULT 'active',
    monitoring_enabled BOOLEAN NOT NULL DEFAULT FALSE,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
)
"""


class WriteConflictError(Exception):
    """The id already exists in the store (e.g. inserted concurrently)."""


class WriteRejectedError(Exception):
    """The store refused the row (constraint violation, invalid data...)."""


class GroupStore(Protocol):
    def existing_ids(self, ids: Iterable[str]) -> set[str]: ...

    def insert(self, group: CanonicalGroup) -> None: ...


def group_row(group: CanonicalGroup) -> tuple[Any, ...]:
    """Column values in GROUP_COLUMNS order (JSON columns wrapped)."""
    return (
        group.id,
        group.name,
        group.name_origin.value,
        group.group_type.value,
        group.risk_level.value,
        group.category,
        group.source_sheet,
        group.member_count,
        Json([p for p in PLATFORMS if p in group.platforms]),
        group.primary_platform,
        group.description,
        group.location,
        Json(group.contact.to_dict()),
        Json(dict(group.social_links)),
        group.influencer_refs,
        group.status.value,
        group.monitoring_enabled,
    )


class PostgresGroupStore:
    def __init__(self, cursor: Any, table: str = "groups", chunk_size: int = 1000) -> None:
        if not _IDENT_RE.fullmatch(table):
            raise ValueError(f"invalid table name: {table!r}")
        if chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        self.cursor = cursor
        self.table = table
        self.chunk_size = chunk_size
        self._cols_sql = ",".join(f'"{c}"' for c in GROUP_COLUMNS)

    def create_table(self) -> None:
        self.cursor.execute(_CREATE_TABLE_SQL.format(table=self.table))
        logger.debug("ensured table %s", self.table)

    def existing_ids(self, ids: Iterable[str]) -> set[str]:
        wanted = list(dict.fromkeys(ids))
        found: set[str] = set()
        for start in range(0, len(wanted), self.chunk_size):
            chunk = wanted[start:start + self.chunk_size]
            self.cursor.execute(f"SELECT id FROM {self.table} WHERE id = ANY(%s)", (chunk,))
            found.update(str(r[0]) for r in self.cursor.fetchall())
        return found

    def insert(self, group: CanonicalGroup) -> None:
        placeholders = ",".join(["%s"] * len(GROUP_COLUMNS))
        sql = (
            f"INSERT INTO {self.table} ({self._cols_sql}) VALUES ({placeholders}) "
            "ON CONFLICT (id) DO NOTHING"
        )
        self.cursor.execute("SAVEPOINT group_insert")
        try:
            self.cursor.execute(sql, group_row(group))
            inserted = self.cursor.rowcount
        except psycopg2.Error as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT group_insert")
            raise WriteRejectedError(str(e).strip() or type(e).__name__) from e
        self.cursor.execute("RELEASE SAVEPOINT group_insert")
        if inserted == 0:
            raise WriteConflictError(f"id already stored: {group.id}")

    def insert_many(self, groups: Sequence[CanonicalGroup]) -> set[str]:
        """Batch insert; returns the ids actually inserted.

        Ids already present are left alone and are missing from the result.
        A rejected batch is rolled back as a whole and raises
        WriteRejectedError; apply_plan then retries row by row with insert().
        """
        if not groups:
            return set()
        sql = (
            f"INSERT INTO {self.table} ({self._cols_sql}) VALUES %s "
            "ON CONFLICT (id) DO NOTHING RETURNING id"
        )
        self.cursor.execute("SAVEPOINT group_batch")
        try:
            returned = execute_values(
                self.cursor, sql, [group_row(g) for g in groups], page_size=self.chunk_size, fetch=True
            )
        except psycopg2.Error as e:
            self.cursor.execute("ROLLBACK TO SAVEPOINT group_batch")
            raise WriteRejectedError(str(e).strip() or type(e).__name__) from e
        self.cursor.execute("RELEASE SAVEPOINT group_batch")
        return {str(r[0]) for r in returned}


class InMemoryGroupStore:
    """Dict-backed store for mock mode, dry runs and tests."""

    def __init__(self, existing: Iterable[str | CanonicalGroup] = ()) -> None:
        self.rows: dict[str, CanonicalGroup | None] = {}
        for item in existing:
            if isinstance(item, CanonicalGroup):
                self.rows[item.id] = item
            else:
                self.rows[str(item)] = None

    def existing_ids(self, ids: Iterable[str]) -> set[str]:
        return {i for i in ids if i in self.rows}

    def insert(self, group: CanonicalGroup) -> None:
        if group.id in self.rows:
            raise WriteConflictError(f"id already stored: {group.id}")
        self.rows[group.id] = group

    def __len__(self) -> int:
        return len(self.rows)

    def __contains__(self, group_id: object) -> bool:
        return group_id in self.rows
