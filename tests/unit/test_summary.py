from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path

from group_ingest.models.group import CanonicalGroup, GroupType, NameOrigin, RiskLevel
from group_ingest.models.processing_result import RunResult, SourceStat, SourceStatus
from group_ingest.models.upsert_intent import UpsertAction, UpsertIntent, WriteFailure, WriteReport
from group_ingest.services.summary import (
    build_breakdown,
    export_json,
    render_breakdown_lines,
    render_source_lines,
    render_summary_line,
)


def _group(gid: str, **kw) -> CanonicalGroup:
    base = dict(id=gid, name=f"Org {gid}", name_origin=NameOrigin.EXPLICIT, source_sheet="S", source_row=1)
    base.update(kw)
    return CanonicalGroup(**base)


def _result(dry_run: bool = False, elapsed: float = 1.5) -> RunResult:
    ok = SourceStat(source="data/g.xlsx", sheet="Right Wing", rows_read=5, explicit=2, derived=1, synthetic=1, dropped=1)
    bad = SourceStat(source="data/x.xlsx", sheet="Ghost", status=SourceStatus.UNAVAILABLE, error="file not found")
    groups = [
        _group("a", platforms=frozenset({"facebook"}), group_type=GroupType.RELIGIOUS, risk_level=RiskLevel.HIGH,
               category="Right Wing", monitoring_enabled=True),
        _group("b", platforms=frozenset({"facebook", "twitter"}), name_origin=NameOrigin.DERIVED_FROM_URL),
        _group("c", name_origin=NameOrigin.SYNTHETIC_PLACEHOLDER),
    ]
    intents = [
        UpsertIntent(UpsertAction.INSERT, groups[0]),
        UpsertIntent(UpsertAction.INSERT, groups[1]),
        UpsertIntent(UpsertAction.SKIP, groups[2]),
    ]
    writes = WriteReport() if dry_run else WriteReport(
        inserted=["a"], skipped=["c"], failures=[WriteFailure("b", "S", 1, "boom")]
    )
    start = datetime(2024, 1, 1, 10, 0, 0, tzinfo=UTC)
    return RunResult(
        start_time=start,
        end_time=start,
        elapsed_seconds=elapsed,
        sources=[ok, bad],
        groups=groups,
        collapsed_duplicates=1,
        intents=intents,
        writes=writes,
        dry_run=dry_run,
    )


def test_summary_line():
    assert render_summary_line(_result()) == (
        "SUMMARY sources=1/2 rows=5 groups=3 explicit=2 derived=1 synthetic=1 dropped=1 "
        "duplicates=1 inserted=1 skipped=1 rejected=1 elapsed_sec=1.5"
    )


def test_summary_line_dry_run_uses_plan():
    line = render_summary_line(_result(dry_run=True, elapsed=2.0))
    assert "inserted=2 skipped=1 rejected=0" in line
    assert line.endswith("elapsed_sec=2")


def test_small_elapsed_not_scientific():
    assert render_summary_line(_result(elapsed=0.000123)).endswith("elapsed_sec=0.000123")


def test_source_lines():
    lines = render_source_lines(_result())
    assert lines[0].startswith("source=Right Wing status=success rows=5 explicit=2 derived=1 synthetic=1 dropped=1")
    assert lines[1] == "source=Ghost status=unavailable error=file not found"


def test_breakdown():
    b = build_breakdown(_result().groups)
    assert b.by_type == {"religious": 1, "other": 2}
    assert b.by_risk == {"high": 1, "low": 2}
    assert b.by_category["Other Groups"] == 2
    assert b.by_platform == {"facebook": 2, "twitter": 1}
    assert b.by_origin == {"explicit": 1, "derived_from_url": 1, "synthetic_placeholder": 1}
    lines = render_breakdown_lines(b)
    assert lines[0] == "by_type other=2 religious=1"
    assert lines[3] == "by_platform facebook=2 twitter=1"


def test_breakdown_lines_empty():
    assert render_breakdown_lines(build_breakdown([])) == ["by_type", "by_risk", "by_category", "by_platform"]


def test_export_json(temp_workdir: Path):
    out = export_json(_result(), temp_workdir / "out" / "groups.json")
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["totalGroups"] == 3
    assert data["collapsedDuplicates"] == 1
    assert data["generatedAt"] == "2024-01-01T10:00:00Z"
    assert [s["status"] for s in data["sources"]] == ["success", "unavailable"]
    assert data["groups"][0]["id"] == "a"
    assert data["groups"][0]["monitoring_enabled"] is True
    assert data["categories"]["byPlatform"] == {"facebook": 2, "twitter": 1}
