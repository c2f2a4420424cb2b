from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, resolve_dsn
from ..db.store import PostgresGroupStore
from ..logging.init import log_summary, setup_logging
from ..models.config_models import ImportConfig
from ..models.processing_result import RunResult
from ..services.orchestrator import PipelineError, run_pipeline
from ..services.summary import (
    build_breakdown,
    export_json,
    render_breakdown_lines,
    render_source_lines,
    render_summary_line,
)
from ..sources.columns import ColumnMapping, column_key
from ..sources.reader import expand_sources, read_source

"""CLI entrypoint: `group-ingest` / `python -m group_ingest.cli`.

Exit codes:
    0  every source read and every write applied (or skipped)
    2  partial failure: an unavailable source or a rejected write
    1  fatal: config error, unusable store, or no readable source at all
"""

EXIT_SUCCESS_ALL = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

INSPECT_SAMPLE_ROWS = 3


@contextmanager
def _db_connection(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    """psycopg2 connection + cursor; commits on success, rolls back on error."""
    conn = psycopg2.connect(resolve_dsn(cfg.database))
    conn.autocommit = False
    try:
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except BaseException:
        conn.rollback()
        raise
    finally:
        conn.close()


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env with python-dotenv; its values override the environment."""
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="group-ingest", description="Group ingestion & classification pipeline")
    p.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Config YAML path")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--inspect-data", action="store_true", help="Print source headers & first rows then exit")
    p.add_argument("--dry-run", action="store_true", help="Plan writes without applying them")
    p.add_argument("--json-out", type=Path, default=None, help="Write groups and audit counts as JSON")
    p.add_argument("--no-db", action="store_true", help="Do not connect to PostgreSQL (mock mode)")
    return p.parse_args(argv)


def _inspect_data(cfg: ImportConfig) -> int:
    for source in expand_sources(cfg.sources):
        rows = read_source(source)
        print(f"SOURCE: {source.name} ({source.path})")
        if rows.error is not None:
            print(f"  unavailable: {rows.error}")
            continue
        print(f"  columns={rows.columns} rows={len(rows)}")
        known = ColumnMapping.build(cfg.columns, source.columns).known_labels()
        unmapped = [c for c in rows.columns if column_key(c) not in known]
        if unmapped:
            # どの論理フィールドにも割り当たらない見出し
            print(f"  unmapped={unmapped}")
        for i, row in enumerate(rows):
            if i >= INSPECT_SAMPLE_ROWS:
                break
            print(f"    row {row.ordinal}: {row.values}")
    return EXIT_SUCCESS_ALL


def _report(result: RunResult, logger: Any) -> None:
    for line in render_source_lines(result):
        logger.info(line)
    for line in render_breakdown_lines(build_breakdown(result.groups)):
        logger.info(line)
    # log_summary が "SUMMARY " を付けるので接頭辞を除く
    log_summary(render_summary_line(result).removeprefix("SUMMARY "))


def _exit_code(result: RunResult) -> int:
    if result.sources and len(result.unavailable_sources) == len(result.sources):
        return EXIT_FATAL
    if result.has_failures:
        return EXIT_PARTIAL_FAILURE
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    # None のときだけ sys.argv を読む ([] はテストからの明示的な空引数)
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    logger.debug("debug mode enabled")

    # .env を最優先で読み込む (DB 接続パラメータ優先順位保証)
    _load_env_file(Path(".env"), override=True)

    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.inspect_data:
        return _inspect_data(cfg)

    logger.info(f"sources configured: {len(cfg.sources)}")

    use_db = not args.no_db and os.getenv("DISABLE_DB_CONNECT") != "1"
    result: RunResult | None = None
    db_mode = "mock"
    try:
        if use_db:
            try:
                with _db_connection(cfg) as cur:
                    db_mode = "live"
                    store = PostgresGroupStore(cur, table=cfg.storage.table)
                    if cfg.storage.create_table:
                        try:
                            store.create_table()
                        except psycopg2.Error as e:
                            raise PipelineError(f"create table {cfg.storage.table}: {e}") from e
                    result = run_pipeline(cfg, store, dry_run=args.dry_run)
            except psycopg2.OperationalError as db_e:
                if db_mode == "live":
                    raise PipelineError(f"database error: {db_e}") from db_e
                logger.info(f"DB connection failed -> fallback to mock mode: {db_e}")
        if result is None:
            logger.debug("mock mode (in-memory store)")
            result = run_pipeline(cfg, None, dry_run=args.dry_run)
    except PipelineError as e:
        logger.error(f"processing({db_mode}): {e}")
        return EXIT_FATAL

    logger.info(f"mode={db_mode} dry_run={args.dry_run} groups={len(result.groups)}")
    if args.json_out is not None:
        out = export_json(result, args.json_out)
        logger.info(f"json written: {out}")

    _report(result, logger)
    return _exit_code(result)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
