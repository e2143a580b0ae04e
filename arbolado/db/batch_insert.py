from __future__ import annotations

import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from psycopg2 import sql
from psycopg2.extras import execute_values

"""DB batch insert.

One call = one INSERT ... VALUES statement built with
psycopg2.extras.execute_values. Transaction boundaries belong to the caller;
this module never commits.
"""


class BatchInsertError(Exception):
    pass


@dataclass(frozen=True)
class BatchMetrics:
    """Timing data for a single batch insert."""
    batch_size: int
    elapsed_seconds: float
    start_time: float  # time.time()
    end_time: float


@dataclass(frozen=True)
class InsertResult:
    inserted_rows: int


def batch_insert(
    cursor: Any,
    table: str,
    columns: Sequence[str],
    rows: Iterable[Sequence[Any]],
    page_size: int = 1000,
    metrics_callback: Callable[[BatchMetrics], None] | None = None,
) -> InsertResult:
    """Perform a batched INSERT.

    Parameters
    ----------
    cursor: psycopg2 cursor
    table: target table name (quoted as an identifier)
    columns: insert columns
    rows: row value sequences, one per record
    page_size: execute_values page size
    metrics_callback: receives a BatchMetrics per call; not invoked for
        empty ``rows`` (the function returns early)
    """
    rows_list = list(rows)
    if not rows_list:
        return InsertResult(inserted_rows=0)

    query = sql.SQL("INSERT INTO {table} ({cols}) VALUES %s").format(
        table=sql.Identifier(table),
        cols=sql.SQL(",").join(sql.Identifier(c) for c in columns),
    )

    start_time = time.time()
    try:
        execute_values(cursor, query, rows_list, page_size=page_size)
    except Exception as e:
        raise BatchInsertError(str(e)) from e
    finally:
        end_time = time.time()
        if metrics_callback is not None:
            metrics_callback(
                BatchMetrics(
                    batch_size=len(rows_list),
                    elapsed_seconds=end_time - start_time,
                    start_time=start_time,
                    end_time=end_time,
                )
            )

    return InsertResult(inserted_rows=len(rows_list))
