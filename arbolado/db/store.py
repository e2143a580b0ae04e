from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import Any, Protocol

from psycopg2 import sql

from ..models.tree_record import NormalizedTreeRecord, StoredTreeRow
from .batch_insert import BatchMetrics, batch_insert

"""Tree row store.

The import pipeline only needs five primitives from storage: a transaction
boundary, bulk delete, bulk insert of one batch, an ordered listing and a
delete by id set. TreeStore names that surface; PostgresTreeStore implements
it over a psycopg2 connection with ``autocommit = False``.

Expected table layout (owned by the application schema, not created here):

    id            primary key, generated
    species       text not null
    street_name   text not null
    street_number text not null
    status        text null       -- storage encoding (Necesita_Poda, ...)
    sidewalk      text null
    observations  text null
    created_at    timestamptz not null default now()
"""

__all__ = [
    "TreeStore",
    "PostgresTreeStore",
    "INSERT_COLUMNS",
]

INSERT_COLUMNS = (
    "species",
    "street_name",
    "street_number",
    "status",
    "sidewalk",
    "observations",
)

_SELECT_COLUMNS = ("id", *INSERT_COLUMNS, "created_at")


class TreeStore(Protocol):
    def transaction(self) -> Any: ...

    def delete_all(self) -> int: ...

    def insert_batch(self, records: Sequence[NormalizedTreeRecord]) -> int: ...

    def list_rows(self) -> list[StoredTreeRow]: ...

    def delete_ids(self, ids: Sequence[Any]) -> int: ...


def _row_values(record: NormalizedTreeRecord) -> tuple[Any, ...]:
    return (
        record.species,
        record.street_name,
        record.street_number,
        record.status,
        record.sidewalk,
        record.observations or None,
    )


class PostgresTreeStore:
    """TreeStore over a psycopg2 connection."""

    def __init__(
        self,
        connection: Any,
        table: str = "trees",
        metrics_callback: Callable[[BatchMetrics], None] | None = None,
    ) -> None:
        self.connection = connection
        self.table = table
        self.metrics_callback = metrics_callback
        self._in_transaction = False

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Commit on success, roll back and re-raise on any failure."""
        if self._in_transaction:
            # Joined by the outer unit of work
            yield
            return
        self._in_transaction = True
        try:
            yield
        except Exception:
            self.connection.rollback()
            raise
        else:
            self.connection.commit()
        finally:
            self._in_transaction = False

    def delete_all(self) -> int:
        with self.connection.cursor() as cur:
            cur.execute(sql.SQL("DELETE FROM {}").format(sql.Identifier(self.table)))
            return cur.rowcount

    def insert_batch(self, records: Sequence[NormalizedTreeRecord]) -> int:
        with self.connection.cursor() as cur:
            result = batch_insert(
                cur,
                self.table,
                INSERT_COLUMNS,
                [_row_values(r) for r in records],
                page_size=max(len(records), 1),
                metrics_callback=self.metrics_callback,
            )
        return result.inserted_rows

    def list_rows(self) -> list[StoredTreeRow]:
        query = sql.SQL("SELECT {cols} FROM {table} ORDER BY created_at ASC, id ASC").format(
            cols=sql.SQL(",").join(sql.Identifier(c) for c in _SELECT_COLUMNS),
            table=sql.Identifier(self.table),
        )
        with self.connection.cursor() as cur:
            cur.execute(query)
            fetched = cur.fetchall()
        return [StoredTreeRow(*row) for row in fetched]

    def delete_ids(self, ids: Sequence[Any]) -> int:
        if not ids:
            return 0
        query = sql.SQL("DELETE FROM {} WHERE id = ANY(%s)").format(sql.Identifier(self.table))
        with self.connection.cursor() as cur:
            cur.execute(query, (list(ids),))
            return cur.rowcount
