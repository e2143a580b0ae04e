from __future__ import annotations

import pytest
from psycopg2 import sql

from arbolado.db.batch_insert import BatchInsertError, InsertResult, batch_insert


class DummyCursor:
    def __init__(self) -> None:
        self.queries: list = []
        self.rows: list = []


# execute_values is patched inside the module so no server is needed
@pytest.fixture(autouse=True)
def patch_execute_values(monkeypatch):
    import arbolado.db.batch_insert as bi

    def fake_execute_values(cursor, query, rows, page_size=1000):
        cursor.queries.append(query)
        cursor.rows.extend(rows)

    monkeypatch.setattr(bi, "execute_values", fake_execute_values)
    return fake_execute_values


def test_batch_insert_basic():
    cur = DummyCursor()
    res = batch_insert(cur, table="trees", columns=["species", "street_name"], rows=[["Roble", "Mitre"], ["Tilo", "Mitre"]])
    assert isinstance(res, InsertResult)
    assert res.inserted_rows == 2
    assert isinstance(cur.queries[0], sql.Composable)
    assert cur.rows == [["Roble", "Mitre"], ["Tilo", "Mitre"]]


def test_batch_insert_empty_rows():
    cur = DummyCursor()
    res = batch_insert(cur, table="trees", columns=["species"], rows=[])
    assert res.inserted_rows == 0
    assert cur.queries == []


def test_batch_insert_wraps_driver_error(monkeypatch):
    import arbolado.db.batch_insert as bi

    def boom(cursor, query, rows, page_size=1000):
        raise RuntimeError("value too long for type character varying(20)")

    monkeypatch.setattr(bi, "execute_values", boom)
    with pytest.raises(BatchInsertError, match="value too long"):
        batch_insert(DummyCursor(), table="trees", columns=["species"], rows=[["x"]])


def test_batch_insert_with_metrics_callback():
    cur = DummyCursor()
    captured = []
    res = batch_insert(
        cur,
        table="trees",
        columns=["species", "street_name"],
        rows=[["Roble", "Mitre"], ["Tilo", "Mitre"]],
        metrics_callback=captured.append,
    )
    assert res.inserted_rows == 2
    assert len(captured) == 1
    metrics = captured[0]
    assert metrics.batch_size == 2
    assert metrics.elapsed_seconds >= 0
    assert metrics.end_time >= metrics.start_time


def test_batch_insert_metrics_called_on_failure(monkeypatch):
    import arbolado.db.batch_insert as bi

    def boom(cursor, query, rows, page_size=1000):
        raise RuntimeError("nope")

    monkeypatch.setattr(bi, "execute_values", boom)
    captured = []
    with pytest.raises(BatchInsertError):
        batch_insert(DummyCursor(), "trees", ["species"], [["x"]], metrics_callback=captured.append)
    assert len(captured) == 1


def test_batch_insert_empty_rows_skip_metrics():
    captured = []
    batch_insert(DummyCursor(), "trees", ["species"], [], metrics_callback=captured.append)
    assert captured == []
