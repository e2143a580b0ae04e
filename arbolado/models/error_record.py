from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the structured import issue log.

One record per rejected row or failed storage operation, serialized as a
JSON Lines entry with a fixed set of keys. ``row`` is -1 for issues that are
not tied to a spreadsheet row (for example a failed batch insert).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured issue record.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: uploaded file name (or "<json>" for JSON-mode imports)
        sheet: sheet name the row came from
        row: spreadsheet row number, -1 when unknown
        error_type: classification in UPPER_SNAKE_CASE
        message: human-readable detail or driver message
    """
    timestamp: str
    file: str
    sheet: str
    row: int
    error_type: str
    message: str

    @staticmethod
    def create(file: str, sheet: str, row: int, error_type: str, message: str) -> ErrorRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file,
            sheet=sheet,
            row=row,
            error_type=error_type,
            message=message,
        )

    def to_json_line(self) -> str:
        return json.dumps(asdict(self), ensure_ascii=False)
