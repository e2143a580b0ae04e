from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg2
from dotenv import load_dotenv

from ..config.loader import AppConfig

"""Connection helpers.

DSN resolution order:
    1. `.env` values (loaded with override so they win over the process env)
    2. DATABASE_URL / PGDSN, then PGHOST / PGPORT / PGUSER / PGPASSWORD / PGDATABASE
    3. the ``database`` section of the config file
"""

__all__ = [
    "load_env_file",
    "resolve_dsn",
    "db_connection",
]


def load_env_file(path: Path = Path(".env"), override: bool = True) -> None:
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def resolve_dsn(cfg: AppConfig) -> str:
    db_cfg = cfg.database
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def db_connection(cfg: AppConfig) -> Iterator[Any]:  # pragma: no cover (needs a live server)
    """Yield a psycopg2 connection with explicit transaction control."""
    conn = psycopg2.connect(resolve_dsn(cfg))
    conn.autocommit = False
    try:
        yield conn
    finally:
        conn.close()
