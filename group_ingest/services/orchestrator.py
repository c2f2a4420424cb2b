from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from datetime import UTC, datetime

from ..db.store import GroupStore, InMemoryGroupStore
from ..logging.error_log import SOURCE_UNAVAILABLE, WRITE_REJECTED, ErrorLogBuffer, ErrorRecord
from ..models.config_models import ImportConfig, SourceConfig
from ..models.group import CanonicalGroup
from ..models.processing_result import RunResult, SourceStat, SourceStatus
from ..models.upsert_intent import WriteReport
from ..sources.columns import ColumnMapping
from ..sources.reader import expand_sources, read_source
from .builder import build_group, reclassify
from .classifier import ClassificationRules, build_rules
from .dedup import deduplicate
from .normalizer import build_sentinels
from .progress import ProgressTracker
from .upsert import apply_plan, plan_upserts

"""Run orchestration: sources -> groups -> dedup -> write plan -> store.

Single-threaded batch. Sources are read one after another; deduplication
waits until every source has been read; the write plan is computed against
the store once and then applied.

Only two conditions are surfaced as errors (error log + WARN/ERROR line +
RunResult): an unavailable source and a write the store rejected. Every
other irregularity (sentinels, unparsable counts, empty rows, duplicate
ids) is absorbed into the audit counters.
"""

__all__ = [
    "PipelineError",
    "run_pipeline",
]

logger = logging.getLogger(__name__)


class PipelineError(Exception):
    """Fatal error: the run cannot produce a meaningful result."""


def _process_source(
    source: SourceConfig,
    config: ImportConfig,
    rules: ClassificationRules,
    sentinels: frozenset[str],
    error_log: ErrorLogBuffer,
) -> tuple[SourceStat, list[CanonicalGroup]]:
    started = time.perf_counter()
    stat = SourceStat(source=source.path, sheet=source.name)

    rows = read_source(source)
    if rows.error is not None:
        stat.status = SourceStatus.UNAVAILABLE
        stat.error = rows.error
        stat.elapsed_seconds = time.perf_counter() - started
        logger.warning("source unavailable: %s (%s)", source.name, rows.error)
        error_log.append(ErrorRecord.create(source.path, source.name, -1, SOURCE_UNAVAILABLE, rows.error))
        return stat, []

    columns = ColumnMapping.build(config.columns, source.columns)
    groups: list[CanonicalGroup] = []
    for row in rows:
        stat.rows_read += 1
        built = build_group(row, columns, rules, sentinels)
        if built.group is None:
            stat.dropped += 1
            logger.debug("sheet=%s row=%d empty, dropped", row.sheet, row.ordinal)
            continue
        stat.count_origin(built.origin)
        groups.append(built.group)

    stat.elapsed_seconds = time.perf_counter() - started
    logger.debug(
        "sheet=%s rows=%d emitted=%d explicit=%d derived=%d synthetic=%d dropped=%d",
        stat.sheet, stat.rows_read, stat.emitted, stat.explicit, stat.derived, stat.synthetic, stat.dropped,
    )
    return stat, groups


def _record_rejections(report: WriteReport, sources: Iterable[SourceConfig], error_log: ErrorLogBuffer) -> None:
    paths = {s.name: s.path for s in sources}
    for failure in report.failures:
        logger.error("write rejected id=%s sheet=%s row=%d: %s", failure.id, failure.sheet, failure.row, failure.message)
        error_log.append(
            ErrorRecord.create(paths.get(failure.sheet, ""), failure.sheet, failure.row, WRITE_REJECTED, failure.message)
        )


def run_pipeline(
    config: ImportConfig,
    store: GroupStore | None = None,
    *,
    dry_run: bool = False,
    error_log: ErrorLogBuffer | None = None,
) -> RunResult:
    """Run the whole pipeline once.

    Args:
        config: validated configuration
        store: target store; None = mock mode (empty in-memory store)
        dry_run: compute the write plan but do not apply it
        error_log: buffer for surfaced errors (default: one under config.logs_dir)

    Raises:
        PipelineError: the store could not be queried / written at all
    """
    start_time = datetime.now(UTC)
    started = time.perf_counter()
    if error_log is None:
        error_log = ErrorLogBuffer(config.logs_dir)
    if store is None:
        store = InMemoryGroupStore()

    sources = expand_sources(config.sources)
    sentinels = build_sentinels(config.null_sentinels)
    rules = build_rules(config.classification, {s.name: s.category for s in sources if s.category})

    stats: list[SourceStat] = []
    emitted: list[CanonicalGroup] = []
    with ProgressTracker(len(sources)) as progress:
        for source in sources:
            progress.start_source(source.name)
            stat, groups = _process_source(source, config, rules, sentinels, error_log)
            stats.append(stat)
            emitted.extend(groups)
            progress.finish_source(rows=stat.rows_read, groups=len(emitted))

    # ここで全ソース読み込み完了 (dedup はこの後のみ)
    dedup = deduplicate(emitted, reclassify=lambda g: reclassify(g, rules))
    if dedup.collapsed:
        logger.info("collapsed %d duplicate records", dedup.collapsed)

    try:
        intents = plan_upserts(dedup.groups, store)
        writes = WriteReport() if dry_run else apply_plan(intents, store)
    except Exception as e:
        error_log.flush()
        raise PipelineError(f"store unusable: {e}") from e

    _record_rejections(writes, sources, error_log)
    log_path = error_log.flush()
    if log_path is not None:
        logger.info("error log written: %s", log_path)

    end_time = datetime.now(UTC)
    return RunResult(
        start_time=start_time,
        end_time=end_time,
        elapsed_seconds=time.perf_counter() - started,
        sources=stats,
        groups=dedup.groups,
        collapsed_duplicates=dedup.collapsed,
        intents=intents,
        writes=writes,
        dry_run=dry_run,
    )
