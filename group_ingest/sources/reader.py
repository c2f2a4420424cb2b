from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from ..models.config_models import SourceConfig
from ..models.row_data import RawRow
from ..services.normalizer import clean_text

"""Source reader: workbook sheets and delimited files -> RawRow sequences.

- header_row (0-based) holds the column labels, following rows are data
- cells are read as raw text; pandas NA conversion is disabled so sentinel
  strings such as "NA" / "null" reach the normalizer untouched
- no fixed column set is assumed; labels are kept as they appear
- a missing file / sheet yields an empty SourceRows carrying `error`
  instead of raising, so one bad source does not abort the run
"""

__all__ = [
    "SourceUnavailableError",
    "SourceRows",
    "read_frame",
    "read_source",
    "expand_sources",
    "build_header",
]

logger = logging.getLogger(__name__)

DELIMITED_SUFFIXES = {".csv": ",", ".tsv": "\t", ".txt": ","}


class SourceUnavailableError(Exception):
    """Raised when a configured source cannot be read at all."""


def _cell_text(val: Any) -> str | None:
    if val is None:
        return None
    if isinstance(val, str):
        return val
    if pd.isna(val):
        return None
    if isinstance(val, (datetime, date)):
        return val.isoformat()
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def build_header(cells: Iterable[Any]) -> list[str]:
    """Column labels from the header line.

    Blank header cells become column_<n>; repeated labels get " (2)", " (3)".
    """
    columns: list[str] = []
    seen: dict[str, int] = {}
    for i, cell in enumerate(cells, start=1):
        text = _cell_text(cell)
        label = text if text is not None and text.strip() else f"column_{i}"
        if label in seen:
            seen[label] += 1
            label = f"{label} ({seen[label]})"
        else:
            seen[label] = 1
        columns.append(label)
    return columns


@dataclass
class SourceRows:
    """Finite, restartable sequence of RawRow for one source.

    Every iteration re-walks the loaded frame, so the sequence can be
    consumed more than once with identical results.
    """
    source: SourceConfig
    columns: list[str] = field(default_factory=list)
    frame: pd.DataFrame | None = None  # data part only (header removed)
    error: str | None = None

    @classmethod
    def unavailable(cls, source: SourceConfig, message: str) -> SourceRows:
        return cls(source=source, columns=[], frame=None, error=message)

    def __len__(self) -> int:
        return 0 if self.frame is None else int(self.frame.shape[0])

    def __iter__(self) -> Iterator[RawRow]:
        if self.frame is None:
            return
        for ordinal, raw in enumerate(self.frame.itertuples(index=False, name=None), start=1):
            values = {col: _cell_text(val) for col, val in zip(self.columns, raw, strict=False)}
            yield RawRow(sheet=self.source.name, ordinal=ordinal, values=values)


def _match_sheet(names: list[str], wanted: str) -> str | None:
    if wanted in names:
        return wanted
    # "Kannadda " のような末尾空白付きシート名を許容
    key = clean_text(wanted).casefold()
    return next((n for n in names if clean_text(n).casefold() == key), None)


def _read_delimited(path: Path, sep: str, width: int | None = None) -> tuple[pd.DataFrame, int]:
    """Read a delimited file as text; returns (frame, widest line seen).

    Lines wider than the first one are reported to `on_bad_lines`; the
    caller re-reads with `width` columns so their extra cells are kept.
    """
    widths: list[int] = []

    def _keep(bad_line: list[str]) -> list[str]:
        widths.append(len(bad_line))
        return bad_line

    df = pd.read_csv(
        path,
        header=None,
        names=list(range(width)) if width else None,
        sep=sep,
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
        encoding="utf-8-sig",
        encoding_errors="replace",
        engine="python",
        on_bad_lines=_keep,
    )
    return df, max(widths, default=df.shape[1])


def read_frame(source: SourceConfig) -> pd.DataFrame:
    """Read the raw (header-less) frame of a source.

    Raises:
        SourceUnavailableError: file missing, sheet missing or unreadable
    """
    path = Path(source.path)
    if not path.exists():
        raise SourceUnavailableError(f"source file not found: {path}")
    try:
        if source.is_workbook:
            with pd.ExcelFile(path) as xls:
                names = [str(n) for n in xls.sheet_names]
                wanted = _match_sheet(names, source.sheet_name)
                if wanted is None:
                    raise SourceUnavailableError(f"sheet '{source.sheet_name}' not found in {path.name}")
                return pd.read_excel(xls, sheet_name=wanted, header=None, dtype=object, keep_default_na=False)
        sep = DELIMITED_SUFFIXES.get(path.suffix.lower(), ",")
        df, widest = _read_delimited(path, sep)
        if widest > df.shape[1]:
            # 行ごとに列数が違う (手編集の CSV) -> 最大幅で読み直す
            df, _ = _read_delimited(path, sep, width=widest)
        return df
    except SourceUnavailableError:
        raise
    except Exception as e:
        raise SourceUnavailableError(f"cannot read {path}: {e}") from e


def _is_blank_row(raw: Iterable[Any]) -> bool:
    for val in raw:
        text = _cell_text(val)
        if text is not None and text.strip():
            return False
    return True


def read_source(source: SourceConfig) -> SourceRows:
    """Load one source and return its rows.

    Never raises for an unreadable source: the returned SourceRows is empty
    and carries the reason in `error`.
    """
    try:
        df = read_frame(source)
    except SourceUnavailableError as e:
        logger.debug("source unavailable sheet=%s path=%s: %s", source.name, source.path, e)
        return SourceRows.unavailable(source, str(e))

    if df.shape[0] <= source.header_row:
        logger.debug("source=%s has no header row (rows=%d)", source.name, df.shape[0])
        return SourceRows(source=source, columns=[], frame=None)

    columns = build_header(df.iloc[source.header_row].tolist())
    data = df.iloc[source.header_row + 1:]
    # 末尾の完全空行はシート書式の残骸なので除外 (途中の空行は ordinal 維持のため残す)
    last = len(data)
    while last > 0 and _is_blank_row(data.iloc[last - 1].tolist()):
        last -= 1
    data = data.iloc[:last]
    logger.debug("source=%s columns=%s data_rows=%d", source.name, columns, len(data))
    return SourceRows(source=source, columns=columns, frame=data)


def expand_sources(sources: Iterable[SourceConfig]) -> list[SourceConfig]:
    """Expand workbook entries flagged all_sheets into one source per sheet.

    An entry that cannot be expanded (missing/unreadable workbook) is kept
    as-is so that reading it reports it as unavailable.
    """
    expanded: list[SourceConfig] = []
    for source in sources:
        if not (source.all_sheets and source.is_workbook):
            expanded.append(source)
            continue
        try:
            with pd.ExcelFile(source.path) as xls:
                sheet_names = [str(n) for n in xls.sheet_names]
        except Exception as e:
            logger.warning("cannot list sheets of %s: %s", source.path, e)
            expanded.append(source)
            continue
        for sheet in sheet_names:
            expanded.append(
                replace(source, name=clean_text(sheet) or sheet, sheet=sheet, all_sheets=False, category=None)
            )
    return expanded
