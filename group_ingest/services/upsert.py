from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from ..db.store import GroupStore, WriteConflictError, WriteRejectedError
from ..models.group import CanonicalGroup
from ..models.upsert_intent import UpsertAction, UpsertIntent, WriteFailure, WriteReport

"""Upsert planner: insert-or-skip, never overwrite, never delete.

plan_upserts() asks the store once which ids already exist. An existing id
(or one already planned earlier in the same batch) becomes SKIP; everything
else becomes INSERT. Running the same input twice therefore inserts on the
first run and skips on the second.
"""

__all__ = [
    "plan_upserts",
    "apply_plan",
]

logger = logging.getLogger(__name__)


def plan_upserts(groups: Iterable[CanonicalGroup], store: GroupStore) -> list[UpsertIntent]:
    batch = list(groups)
    existing = store.existing_ids([g.id for g in batch])
    planned: set[str] = set()
    intents: list[UpsertIntent] = []
    for group in batch:
        if group.id in existing or group.id in planned:
            intents.append(UpsertIntent(UpsertAction.SKIP, group))
        else:
            intents.append(UpsertIntent(UpsertAction.INSERT, group))
        planned.add(group.id)
    logger.debug(
        "planned %d intents (insert=%d skip=%d)",
        len(intents),
        sum(1 for i in intents if i.action is UpsertAction.INSERT),
        sum(1 for i in intents if i.action is UpsertAction.SKIP),
    )
    return intents


def _insert_one(group: CanonicalGroup, store: GroupStore, report: WriteReport) -> None:
    try:
        store.insert(group)
    except WriteConflictError:
        report.skipped.append(group.id)
    except WriteRejectedError as e:
        logger.debug("write rejected id=%s: %s", group.id, e)
        report.failures.append(WriteFailure(group.id, group.source_sheet, group.source_row, str(e)))
    else:
        report.inserted.append(group.id)


def _apply_batch(inserts: Sequence[CanonicalGroup], store: GroupStore, report: WriteReport) -> bool:
    insert_many = getattr(store, "insert_many", None)
    if insert_many is None:
        return False
    try:
        inserted = insert_many(inserts)
    except WriteRejectedError as e:
        logger.debug("batch insert rejected, retrying row by row: %s", e)
        return False
    for group in inserts:
        (report.inserted if group.id in inserted else report.skipped).append(group.id)
    return True


def apply_plan(intents: Iterable[UpsertIntent], store: GroupStore) -> WriteReport:
    """Execute INSERT intents against the store.

    A concurrent insert of the same id counts as skipped; a rejected row is
    collected as a WriteFailure and the rest of the batch continues. Ids in
    the report keep plan order within each list.
    """
    report = WriteReport()
    inserts: list[CanonicalGroup] = []
    for intent in intents:
        if intent.action is UpsertAction.SKIP:
            report.skipped.append(intent.id)
        else:
            inserts.append(intent.group)

    if inserts and not _apply_batch(inserts, store, report):
        for group in inserts:
            _insert_one(group, store, report)
    return report
