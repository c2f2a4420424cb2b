from __future__ import annotations

import json
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from ..models.group import PLATFORMS, CanonicalGroup
from ..models.processing_result import RunResult, SourceStatus

"""Audit output: SUMMARY line, per-source lines, breakdowns and JSON export.

SUMMARY line format (single line, key=value, fixed key order):
SUMMARY sources={ok}/{total} rows={rows} groups={groups} explicit={n}
derived={n} synthetic={n} dropped={n} duplicates={n} inserted={n}
skipped={n} rejected={n} elapsed_sec={elapsed}

On a dry run inserted/skipped are the planned counts.
"""

__all__ = [
    "Breakdown",
    "build_breakdown",
    "render_summary_line",
    "render_source_lines",
    "render_breakdown_lines",
    "export_json",
]


@dataclass
class Breakdown:
    by_type: Counter[str] = field(default_factory=Counter)
    by_risk: Counter[str] = field(default_factory=Counter)
    by_category: Counter[str] = field(default_factory=Counter)
    by_platform: Counter[str] = field(default_factory=Counter)
    by_origin: Counter[str] = field(default_factory=Counter)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            "byType": dict(self.by_type),
            "byRiskLevel": dict(self.by_risk),
            "byCategory": dict(self.by_category),
            "byPlatform": dict(self.by_platform),
            "byNameOrigin": dict(self.by_origin),
        }


def build_breakdown(groups: list[CanonicalGroup]) -> Breakdown:
    breakdown = Breakdown()
    for g in groups:
        breakdown.by_type[g.group_type.value] += 1
        breakdown.by_risk[g.risk_level.value] += 1
        breakdown.by_category[g.category] += 1
        breakdown.by_origin[g.name_origin.value] += 1
        for platform in PLATFORMS:
            if platform in g.platforms:
                breakdown.by_platform[platform] += 1
    return breakdown


def _format_seconds(value: float) -> str:
    # 整数なら小数点なし、極小値は指数表記を避ける
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.3f}".rstrip("0").rstrip(".")


def render_summary_line(result: RunResult) -> str:
    """Render the SUMMARY line for a run.

    >>> render_summary_line(result)  # doctest: +SKIP
    'SUMMARY sources=2/2 rows=10 groups=9 explicit=7 derived=1 synthetic=1 dropped=1 ...'
    """
    total = len(result.sources)
    ok = total - len(result.unavailable_sources)
    explicit = sum(s.explicit for s in result.sources)
    derived = sum(s.derived for s in result.sources)
    synthetic = sum(s.synthetic for s in result.sources)
    dropped = sum(s.dropped for s in result.sources)
    if result.dry_run:
        inserted, skipped = result.planned_inserts, result.planned_skips
    else:
        inserted, skipped = len(result.writes.inserted), len(result.writes.skipped)

    return (
        f"SUMMARY sources={ok}/{total} "
        f"rows={result.rows_read} "
        f"groups={len(result.groups)} "
        f"explicit={explicit} "
        f"derived={derived} "
        f"synthetic={synthetic} "
        f"dropped={dropped} "
        f"duplicates={result.collapsed_duplicates} "
        f"inserted={inserted} "
        f"skipped={skipped} "
        f"rejected={result.writes.rejected} "
        f"elapsed_sec={_format_seconds(result.elapsed_seconds)}"
    )


def render_source_lines(result: RunResult) -> list[str]:
    lines = []
    for s in result.sources:
        if s.status is SourceStatus.UNAVAILABLE:
            lines.append(f"source={s.sheet} status=unavailable error={s.error}")
            continue
        lines.append(
            f"source={s.sheet} status=success rows={s.rows_read} "
            f"explicit={s.explicit} derived={s.derived} synthetic={s.synthetic} "
            f"dropped={s.dropped} elapsed_sec={_format_seconds(s.elapsed_seconds)}"
        )
    return lines


def _counter_text(counter: Counter[str]) -> str:
    return " ".join(f"{k}={v}" for k, v in counter.most_common())


def render_breakdown_lines(breakdown: Breakdown) -> list[str]:
    return [
        f"by_type {_counter_text(breakdown.by_type)}".rstrip(),
        f"by_risk {_counter_text(breakdown.by_risk)}".rstrip(),
        f"by_category {_counter_text(breakdown.by_category)}".rstrip(),
        f"by_platform {_counter_text(breakdown.by_platform)}".rstrip(),
    ]


def export_json(result: RunResult, path: str | Path) -> Path:
    """Write all groups plus audit counts to a JSON file."""
    breakdown = build_breakdown(result.groups)
    payload = {
        "generatedAt": result.end_time.isoformat().replace("+00:00", "Z"),
        "totalGroups": len(result.groups),
        "sources": [
            {
                "sheet": s.sheet,
                "source": s.source,
                "status": s.status.value,
                "rowsRead": s.rows_read,
                "explicit": s.explicit,
                "derived": s.derived,
                "synthetic": s.synthetic,
                "dropped": s.dropped,
                "error": s.error,
            }
            for s in result.sources
        ],
        "collapsedDuplicates": result.collapsed_duplicates,
        "categories": breakdown.to_dict(),
        "groups": [g.to_dict() for g in result.groups],
    }
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    return out
