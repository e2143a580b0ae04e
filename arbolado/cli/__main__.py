from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from arbolado.config.loader import AppConfig, ConfigError, load_config
from arbolado.db.connection import db_connection, load_env_file
from arbolado.db.store import PostgresTreeStore, TreeStore
from arbolado.excel.reader import WorkbookReadError, read_first_sheet
from arbolado.logging.error_log import ErrorLogBuffer
from arbolado.logging.init import set_debug, setup_logging
from arbolado.services.batch_loader import BatchLoadError
from arbolado.services.importer import import_rows, preview_rows, purge_trees, sweep_duplicates
from arbolado.services.progress import RowProgress

"""Operator CLI.

    python -m arbolado.cli preview FILE
    python -m arbolado.cli import FILE [--replace-all] [--unify]
    python -m arbolado.cli purge
    python -m arbolado.cli dedupe
    python -m arbolado.cli serve [--host H] [--port P]
"""

EXIT_SUCCESS = 0
EXIT_FATAL = 1


@contextmanager
def _open_store(cfg: AppConfig) -> Iterator[TreeStore]:  # pragma: no cover (thin wrapper)
    with db_connection(cfg) as conn:
        yield PostgresTreeStore(conn, table=cfg.table)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Tree inventory spreadsheet importer")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help="Config file (default config/arbolado.yml)")
    sub = p.add_subparsers(dest="command", required=True)

    pv = sub.add_parser("preview", help="Normalize a workbook and print suggestions as JSON")
    pv.add_argument("file", type=Path)

    im = sub.add_parser("import", help="Import a workbook into the tree table")
    im.add_argument("file", type=Path)
    im.add_argument("--replace-all", action="store_true", help="Delete stored trees first (atomic)")
    im.add_argument("--unify", action="store_true", help="Apply every street-name suggestion before loading")

    sub.add_parser("purge", help="Delete every stored tree")
    sub.add_parser("dedupe", help="Delete stored exact duplicates, keeping the oldest")

    sv = sub.add_parser("serve", help="Run the HTTP API (development server)")
    sv.add_argument("--host", default="127.0.0.1")
    sv.add_argument("--port", type=int, default=8000)
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()
    # None only: an explicit [] must not fall back to sys.argv
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    if args.debug:
        set_debug(logger)
        logger.debug("debug mode enabled")

    load_env_file(Path(".env"), override=True)
    try:
        cfg = load_config(args.config)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "serve":  # pragma: no cover (blocking)
        from arbolado.web.app import create_app
        create_app(app_config=cfg).run(host=args.host, port=args.port, debug=False, use_reloader=False)
        return EXIT_SUCCESS

    if args.command in ("preview", "import"):
        if not args.file.exists():
            logger.error(f"file not found: {args.file}")
            return EXIT_FATAL
        try:
            sheet = read_first_sheet(args.file)
        except WorkbookReadError as e:
            logger.error(f"workbook: {e}")
            return EXIT_FATAL
        if args.command == "preview":
            result = preview_rows(sheet.rows, threshold=cfg.similarity_threshold)
            print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
            return EXIT_SUCCESS

    try:
        with _open_store(cfg) as store:
            if args.command == "import":
                error_log = ErrorLogBuffer(cfg.error_log_path) if cfg.error_log_path else None
                with RowProgress(len(sheet.rows)) as progress:
                    result = import_rows(
                        store,
                        sheet.rows,
                        replace_all=args.replace_all,
                        unify=args.unify,
                        threshold=cfg.similarity_threshold,
                        batch_size=cfg.batch_size,
                        error_log=error_log,
                        file_name=args.file.name,
                        sheet_name=sheet.sheet_name,
                        on_start=progress.set_total,
                        on_batch=progress,
                    )
                for inv in result.errors:
                    logger.warning(f"row {inv.row}: {inv.reason}")
            elif args.command == "purge":
                purge_trees(store)
            elif args.command == "dedupe":
                deleted = sweep_duplicates(store)
                logger.info(f"deleted={deleted}")
    except BatchLoadError as e:
        logger.error(f"import failed (committed={e.created}): {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"storage: {e}")
        return EXIT_FATAL
    return EXIT_SUCCESS


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
