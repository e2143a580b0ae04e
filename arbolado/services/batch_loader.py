from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator, Sequence

from ..config.loader import DEFAULT_BATCH_SIZE
from ..db.store import TreeStore
from ..models.import_result import BatchStatsAccumulator, LoadResult
from ..models.tree_record import NormalizedTreeRecord

"""Batch loader.

transactional=True  -> optional purge plus every batch in one transaction;
                       any failure rolls everything back, purge included.
transactional=False -> each batch commits on its own; a failure leaves the
                       earlier batches in place and raises BatchLoadError
                       carrying how many rows were committed.

Insertion order across batches is not part of the contract.
"""

__all__ = [
    "BATCH_SIZE",
    "BatchLoadError",
    "chunked",
    "load_records",
]

logger = logging.getLogger(__name__)

BATCH_SIZE = DEFAULT_BATCH_SIZE


class BatchLoadError(Exception):
    """A batch failed; ``created`` rows are committed (0 when transactional)."""

    def __init__(self, message: str, created: int = 0, transactional: bool = False) -> None:
        super().__init__(message)
        self.created = created
        self.transactional = transactional


def chunked(records: Sequence[NormalizedTreeRecord], size: int) -> Iterator[Sequence[NormalizedTreeRecord]]:
    if size < 1:
        raise ValueError(f"batch size must be positive: {size}")
    for start in range(0, len(records), size):
        yield records[start:start + size]


def load_records(
    store: TreeStore,
    records: Sequence[NormalizedTreeRecord],
    *,
    transactional: bool,
    purge: bool = False,
    batch_size: int = BATCH_SIZE,
    on_batch: Callable[[int], None] | None = None,
) -> LoadResult:
    """Insert ``records`` in batches of ``batch_size``.

    Args:
        store: storage collaborator
        records: final record set (already deduplicated)
        transactional: one atomic unit vs independent batches
        purge: delete every stored row before inserting
        batch_size: rows per insert statement
        on_batch: called with the row count of each committed/inserted batch

    Raises:
        BatchLoadError: wrapping the storage failure
    """
    stats = BatchStatsAccumulator()
    created = 0

    def insert(batch: Sequence[NormalizedTreeRecord]) -> int:
        started = time.perf_counter()
        inserted = store.insert_batch(batch)
        stats.add_batch_time(time.perf_counter() - started)
        return inserted

    if transactional:
        try:
            with store.transaction():
                if purge:
                    purged = store.delete_all()
                    logger.info("purged %s stored trees", purged)
                for batch in chunked(records, batch_size):
                    created += insert(batch)
                    if on_batch is not None:
                        on_batch(len(batch))
        except Exception as e:
            logger.error("transactional load rolled back after %s rows: %s", created, e)
            raise BatchLoadError(str(e), created=0, transactional=True) from e
    else:
        try:
            if purge:
                with store.transaction():
                    purged = store.delete_all()
                logger.info("purged %s stored trees", purged)
            for batch in chunked(records, batch_size):
                with store.transaction():
                    inserted = insert(batch)
                created += inserted
                if on_batch is not None:
                    on_batch(len(batch))
        except Exception as e:
            logger.error("batch load stopped with %s rows committed: %s", created, e)
            raise BatchLoadError(str(e), created=created, transactional=False) from e

    total_batches, avg, p95 = stats.get_stats()
    logger.debug("loaded %s rows in %s batches (avg %.4fs p95 %.4fs)", created, total_batches, avg, p95)
    return LoadResult(
        created=created,
        batches=total_batches,
        purged=purge,
        avg_batch_seconds=avg,
        p95_batch_seconds=p95,
    )
