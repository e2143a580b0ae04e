from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from arbolado.models.error_record import ErrorRecord

"""Import issue log buffering.

Records are kept in memory for the duration of one import and flushed as
JSON Lines to ``<logs_dir>/errors-YYYYMMDD-HHMMSS.log`` (UTC). A buffer
without a directory only collects; flush is then a no-op.
"""

__all__ = [
    "ErrorRecord",
    "ErrorLogBuffer",
]

TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer for error records. Flush appends JSON Lines.

    Single request at a time; no locking.
    """
    def __init__(self, logs_dir: Path | None = None) -> None:
        self._records: list[ErrorRecord] = []
        self._logs_dir = logs_dir
        self._file_path: Path | None = None

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._records)

    @property
    def file_path(self) -> Path | None:
        if self._logs_dir is None:
            return None
        if self._file_path is None:
            self._logs_dir.mkdir(parents=True, exist_ok=True)
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self._logs_dir / f"errors-{stamp}.log"
        return self._file_path

    def append(self, record: ErrorRecord) -> None:
        self._records.append(record)

    def __len__(self) -> int:  # pragma: no cover (trivial)
        return len(self._records)

    def flush(self) -> Path | None:
        fp = self.file_path
        if fp is None or not self._records:
            return fp
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
