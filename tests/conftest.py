# Shared pytest fixtures
from __future__ import annotations

import tempfile
from collections.abc import Callable
from pathlib import Path

import pandas as pd
import pytest

from group_ingest.logging.init import reset_logging


@pytest.fixture(autouse=True)
def _isolate_run(monkeypatch):
    # 実 DB へは接続しない (live mode のテストは個別に delenv する)
    monkeypatch.setenv("DISABLE_DB_CONNECT", "1")
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "data").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def make_workbook(temp_workdir: Path) -> Callable[..., Path]:
    """Write a real .xlsx (openpyxl) with one sheet per entry; rows include the header line."""
    def _make(name: str, sheets: dict[str, list[list[object]]]) -> Path:
        path = temp_workdir / "data" / name
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return path
    return _make


@pytest.fixture()
def make_csv(temp_workdir: Path) -> Callable[..., Path]:
    def _make(name: str, text: str) -> Path:
        path = temp_workdir / "data" / name
        path.write_text(text, encoding="utf-8")
        return path
    return _make


RIGHT_HINDU_ROWS: list[list[object]] = [
    ["Sl No", "Organisation Type", "Total Members", "Facebook Profile URL", "Linked Phone Number"],
    [1, "Sample Trust", "1,200", "https://facebook.com/sampletrust", "Nil"],
    [2, "Nil", "NA", "https://www.facebook.com/sample-group_page", "-"],
    [3, None, None, None, "9876543210"],
    [4, "Hindu Jagarana Vedike", "1.2M", "https://facebook.com/groups/12345", None],
]

RIGHT_WING_ROWS: list[list[object]] = [
    ["Sl No", "Facebook Page Name", "Followers", "Facebook Page Link", "Twitter"],
    [1, "Shri Rama Sena", "20000", "https://facebook.com/srisena", "https://twitter.com/srisena"],
    [2, None, None, "https://facebook.com/profile.php?id=987", None],
]


@pytest.fixture()
def sample_workbook(make_workbook) -> Path:
    return make_workbook(
        "groups.xlsx",
        {"Right Hindu Groups": RIGHT_HINDU_ROWS, "Right Wing": RIGHT_WING_ROWS},
    )


@pytest.fixture()
def sample_config_yaml() -> str:
    return """sources:
  - name: Right Hindu Groups
    path: data/groups.xlsx
  - name: Right Wing
    path: data/groups.xlsx
logs_dir: ./logs
database:
  host: localhost
  port: 5432
  user: appuser
  password: secret
  database: appdb
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "import.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg
