# Shared pytest fixtures
from __future__ import annotations

import io
import tempfile
from contextlib import contextmanager, nullcontext
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from arbolado.config.loader import AppConfig
from arbolado.db.batch_insert import BatchInsertError
from arbolado.logging.init import reset_logging
from arbolado.models.tree_record import StoredTreeRow

TREE_HEADER = ["Especie", "Calle", "Altura", "Estado", "Vereda"]


class FakeTreeStore:
    """In-memory TreeStore with snapshot rollback and failure injection.

    ``fail_on_batch`` makes the n-th insert_batch call (1-based) raise.
    """

    def __init__(self, fail_on_batch: int | None = None) -> None:
        self.rows: list[StoredTreeRow] = []
        self.fail_on_batch = fail_on_batch
        self.insert_calls = 0
        self.batch_sizes: list[int] = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 1
        self._depth = 0
        self._clock = datetime(2024, 1, 1, tzinfo=UTC)

    @contextmanager
    def transaction(self):
        if self._depth:
            yield
            return
        snapshot = list(self.rows)
        self._depth += 1
        try:
            yield
        except Exception:
            self.rows = snapshot
            self.rollbacks += 1
            raise
        else:
            self.commits += 1
        finally:
            self._depth -= 1

    def delete_all(self) -> int:
        count = len(self.rows)
        self.rows = []
        return count

    def insert_batch(self, records) -> int:
        self.insert_calls += 1
        if self.fail_on_batch is not None and self.insert_calls == self.fail_on_batch:
            raise BatchInsertError("injected failure")
        self.batch_sizes.append(len(records))
        for r in records:
            self.rows.append(
                StoredTreeRow(
                    id=self._next_id,
                    species=r.species,
                    street_name=r.street_name,
                    street_number=r.street_number,
                    status=r.status,
                    sidewalk=r.sidewalk,
                    observations=r.observations or None,
                    created_at=self._clock + timedelta(seconds=self._next_id),
                )
            )
            self._next_id += 1
        return len(records)

    def list_rows(self) -> list[StoredTreeRow]:
        return sorted(self.rows, key=lambda r: (r.created_at, r.id))

    def delete_ids(self, ids) -> int:
        wanted = set(ids)
        before = len(self.rows)
        self.rows = [r for r in self.rows if r.id not in wanted]
        return before - len(self.rows)

    def seed(self, *rows: tuple[str, str, str, str | None, str | None]) -> None:
        """Insert (species, street, number, status, sidewalk) tuples directly."""
        from arbolado.models.tree_record import NormalizedTreeRecord
        self.insert_batch([
            NormalizedTreeRecord(species=s, street_name=c, street_number=n, status=st, sidewalk=v)
            for s, c, n, st, v in rows
        ])
        self.insert_calls = 0
        self.batch_sizes = []


def make_workbook(rows: list[list[Any]], header: list[str] | None = None, sheet_name: str = "Arboles") -> bytes:
    """Build .xlsx bytes with ``header`` on row 1."""
    df = pd.DataFrame(rows, columns=header or TREE_HEADER)
    buf = io.BytesIO()
    with pd.ExcelWriter(buf, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def _reset_logger():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(monkeypatch) -> Path:
    with tempfile.TemporaryDirectory() as d:
        p = Path(d)
        (p / "config").mkdir()
        (p / "logs").mkdir()
        monkeypatch.chdir(p)
        yield p


@pytest.fixture()
def sample_config_yaml() -> str:
    return """table: trees
batch_size: 2
similarity_threshold: 0.85
max_upload_mb: 4
error_log_dir: ./logs
database:
  host: localhost
  port: 5432
  user: arbolado
  password: secret
  database: arbolado
"""


@pytest.fixture()
def write_config(temp_workdir: Path, sample_config_yaml: str) -> Path:
    cfg = temp_workdir / "config" / "arbolado.yml"
    cfg.write_text(sample_config_yaml, encoding="utf-8")
    return cfg


@pytest.fixture()
def store() -> FakeTreeStore:
    return FakeTreeStore()


@pytest.fixture()
def sample_workbook() -> bytes:
    return make_workbook([
        ["Roble", "Av. Siempreviva", "742", "Sano", "Norte"],
        ["Roble", "Av. Siemprevíva", "742", "sano", "norte"],
        [None, "Calle X", "10", "Sano", "Sur"],
    ])


@pytest.fixture()
def app(store: FakeTreeStore, monkeypatch):
    monkeypatch.delenv("ARBOLADO_CONFIG", raising=False)
    from arbolado.web.app import create_app
    flask_app = create_app(
        {"TESTING": True, "STORE_FACTORY": lambda: nullcontext(store)},
        app_config=AppConfig(batch_size=2),
    )
    return flask_app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def workbook_factory():
    return make_workbook


@pytest.fixture()
def store_factory():
    return FakeTreeStore
