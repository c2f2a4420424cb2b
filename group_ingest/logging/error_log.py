from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from ..models.error_record import ErrorRecord

"""JSON-Lines error log for surfaced pipeline errors.

Only SOURCE_UNAVAILABLE and WRITE_REJECTED end up here; absorbed conditions
(sentinels, unparsable counts, empty rows) are audit counters, not errors.

- one file per run: `<logs_dir>/errors-YYYYMMDD-HHMMSS.log` (UTC)
- records are buffered and written on flush(); nothing is created when
  there is nothing to write
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
    "SOURCE_UNAVAILABLE",
    "WRITE_REJECTED",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"

SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
WRITE_REJECTED = "WRITE_REJECTED"


class ErrorLogBuffer:
    """In-memory buffer of ErrorRecord; flush() appends them as JSON Lines."""

    def __init__(self, logs_dir: str | Path = "./logs") -> None:
        self.logs_dir = Path(logs_dir)
        self._records: list[ErrorRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"errors-{stamp}.log"
        return self._file_path

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None if empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
