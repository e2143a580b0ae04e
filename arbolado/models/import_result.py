from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any

from .reconciliation import DuplicateGroup, StreetCluster
from .tree_record import InvalidRow, NormalizedTreeRecord

"""Result models for preview, import and batch loading.

Each result knows how to render itself as the JSON payload returned by the
HTTP layer, so the route handlers stay thin.
"""

__all__ = [
    "PreviewResult",
    "ImportResult",
    "JsonImportResult",
    "LoadResult",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class PreviewResult:
    rows: list[NormalizedTreeRecord]
    suggestions: list[StreetCluster]
    duplicates: list[DuplicateGroup]
    invalids: list[InvalidRow]

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [r.to_dict() for r in self.rows],
            "suggestions": [s.to_dict() for s in self.suggestions],
            "duplicates": [d.to_dict() for d in self.duplicates],
            "invalids": [i.to_dict() for i in self.invalids],
        }


@dataclass(frozen=True)
class LoadResult:
    """Outcome of one batch loader call."""
    created: int
    batches: int
    purged: bool = False
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0


@dataclass(frozen=True)
class ImportResult:
    """Excel-mode import outcome.

    On success ``created + skipped + duplicate_skipped`` equals the number of
    data rows read from the sheet.
    """
    created: int
    skipped: int  # invalid rows
    duplicate_skipped: int  # intra-batch duplicates
    errors: list[InvalidRow] = field(default_factory=list)
    total_rows: int = 0
    replace_all: bool = False
    elapsed_seconds: float = 0.0
    batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "created": self.created,
            "skipped": self.skipped,
            "duplicateSkipped": self.duplicate_skipped,
            "errors": [e.to_dict() for e in self.errors],
            "mode": "excel",
        }


@dataclass(frozen=True)
class JsonImportResult:
    """JSON-mode import outcome (rows already normalized by a preview)."""
    created: int
    received: int
    deduped: int  # records left after the intra-batch duplicate filter
    duplicate_skipped: int
    skipped: int = 0  # rows missing key fields
    elapsed_seconds: float = 0.0
    batches: int = 0
    avg_batch_seconds: float = 0.0
    p95_batch_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": True,
            "created": self.created,
            "mode": "json",
            "received": self.received,
            "deduped": self.deduped,
            "skipped": self.skipped,
            "duplicateSkipped": self.duplicate_skipped,
        }


class BatchStatsAccumulator:
    """Collects per-batch timings and summarizes them for LoadResult."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)
        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 cut points
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]
        return (total_batches, avg_batch_seconds, p95_batch_seconds)
