from __future__ import annotations

import time
from pathlib import Path

import numpy as np
import pandas as pd

from group_ingest.config.loader import parse_config
from group_ingest.db.store import InMemoryGroupStore
from group_ingest.services.orchestrator import run_pipeline

"""Performance smoke test: whole pipeline over a synthetic 10k-row sheet.

The threshold is lenient. It catches accidental quadratic behaviour
(per-row store round trips, regex compilation per row).
"""

ROWS = 10_000
MIN_ROWS_PER_SEC = 300


def generate_synthetic_frame(rows: int = ROWS) -> pd.DataFrame:
    rng = np.random.default_rng(42)
    names = np.array(["Sample Trust", "Hindu Yuva Sena", "Nil", "", "ರೈತ ಸಂಘ", "Farmers Union"])
    members = np.array(["1,200", "107.7K", "NA", "3 lakh", "", "1.2M"])
    picks = rng.integers(0, len(names), size=rows)
    counts = rng.integers(0, len(members), size=rows)
    return pd.DataFrame({
        "Sl No": np.arange(1, rows + 1),
        "Organisation Type": names[picks],
        "Total Members": members[counts],
        "Facebook Profile URL": [f"https://facebook.com/page_{i}" for i in range(rows)],
    })


def test_pipeline_throughput(temp_workdir: Path):
    generate_synthetic_frame().to_csv(temp_workdir / "data" / "bulk.csv", index=False)
    cfg = parse_config({"sources": [{"name": "Bulk", "path": "data/bulk.csv"}]})
    store = InMemoryGroupStore()

    start = time.perf_counter()
    result = run_pipeline(cfg, store)
    elapsed = time.perf_counter() - start

    assert len(result.groups) == ROWS
    assert len(store) == ROWS
    throughput = ROWS / elapsed
    assert throughput >= MIN_ROWS_PER_SEC, f"throughput too low: {throughput:.1f} rows/s"
