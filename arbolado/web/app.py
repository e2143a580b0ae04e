"""Flask application exposing the tree import endpoints."""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from flask import Flask, jsonify, request
from werkzeug.exceptions import RequestEntityTooLarge

from ..config.loader import AppConfig, load_config
from ..db.connection import db_connection, load_env_file
from ..db.store import PostgresTreeStore, TreeStore
from ..excel.reader import WorkbookReadError, read_first_sheet
from ..logging.error_log import ErrorLogBuffer
from ..models.reconciliation import StreetCluster
from ..services.batch_loader import BatchLoadError
from ..services.importer import (
    InvalidTreeError,
    create_tree,
    import_records,
    import_rows,
    preview_workbook,
    purge_trees,
    sweep_duplicates,
)
from ..services.sections import street_sections, tree_to_dict

logger = logging.getLogger(__name__)

StoreFactory = Callable[[], Any]


def _postgres_store_factory(cfg: AppConfig) -> StoreFactory:
    @contextmanager
    def factory() -> Iterator[TreeStore]:  # pragma: no cover (needs a live server)
        with db_connection(cfg) as conn:
            yield PostgresTreeStore(conn, table=cfg.table)
    return factory


def _error(message: str, status: int, error: Exception | str | None = None):
    body: dict[str, Any] = {"message": message}
    if error is not None:
        body["error"] = str(error)
    return jsonify(body), status


def _is_multipart() -> bool:
    return request.mimetype == "multipart/form-data"


def _parse_unifications(raw: Any) -> list[StreetCluster]:
    """Accepted suggestions from a JSON import body.

    Raises:
        ValueError: not a list of {canonical, variants} objects
    """
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValueError("unifications must be an array")
    try:
        return [StreetCluster.from_dict(item) for item in raw]
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"invalid unification entry: {e}") from e


def create_app(config=None, app_config: AppConfig | None = None):
    """Create and configure the Flask application.

    ``config`` updates ``app.config``; set ``STORE_FACTORY`` there to a
    zero-argument callable returning a context manager that yields a
    TreeStore (tests inject an in-memory store this way).
    """
    load_env_file()
    cfg = app_config or load_config()
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = cfg.max_upload_mb * 1024 * 1024
    app.config["ARBOLADO"] = cfg
    app.config["STORE_FACTORY"] = _postgres_store_factory(cfg)
    if config:
        app.config.update(config)

    def store_session():
        return app.config["STORE_FACTORY"]()

    def error_log() -> ErrorLogBuffer | None:
        path = cfg.error_log_path
        return ErrorLogBuffer(path) if path is not None else None

    @app.errorhandler(RequestEntityTooLarge)
    def upload_too_large(e):
        return _error(f"Upload exceeds {cfg.max_upload_mb} MB", 413, e)

    @app.get("/api/trees")
    def list_trees():
        try:
            with store_session() as store:
                rows = store.list_rows()
        except Exception as e:
            logger.exception("listing trees failed")
            return _error("Error fetching trees", 500, e)
        return jsonify({"streets": street_sections(rows), "trees": [tree_to_dict(r) for r in rows]})

    @app.post("/api/trees/preview")
    def preview():
        if not _is_multipart():
            return _error("multipart/form-data is required", 400)
        upload = request.files.get("file")
        if upload is None:
            return _error("No file provided", 400)
        try:
            result = preview_workbook(upload.read(), threshold=cfg.similarity_threshold)
        except WorkbookReadError as e:
            return _error("Could not read the spreadsheet", 400, e)
        except Exception as e:
            logger.exception("preview failed")
            return _error("Error previewing the spreadsheet", 500, e)
        return jsonify(result.to_dict()), 200

    @app.post("/api/trees")
    def import_trees():
        if _is_multipart():
            upload = request.files.get("file")
            if upload is None:
                return _error("No file provided", 400)
            replace_all = request.form.get("replaceAll") == "1"
            try:
                sheet = read_first_sheet(upload.read())
            except WorkbookReadError as e:
                return _error("Could not read the spreadsheet", 400, e)
            try:
                with store_session() as store:
                    result = import_rows(
                        store,
                        sheet.rows,
                        replace_all=replace_all,
                        batch_size=cfg.batch_size,
                        error_log=error_log(),
                        file_name=upload.filename or "upload",
                        sheet_name=sheet.sheet_name,
                    )
            except BatchLoadError as e:
                return _error("Error importing trees", 500, e)
            except Exception as e:
                logger.exception("excel import failed")
                return _error("Error importing trees", 500, e)
            return jsonify(result.to_dict()), 200

        body = request.get_json(silent=True)
        if not isinstance(body, dict) or not isinstance(body.get("rows"), list):
            return _error("Expected multipart/form-data or a JSON body with a rows array", 400)
        rows = [r for r in body["rows"] if isinstance(r, dict)]
        try:
            unifications = _parse_unifications(body.get("unifications"))
        except ValueError as e:
            return _error("Invalid unifications", 400, e)
        try:
            with store_session() as store:
                result = import_records(
                    store,
                    rows,
                    unifications=unifications,
                    batch_size=cfg.batch_size,
                    error_log=error_log(),
                )
        except BatchLoadError as e:
            return _error("Error importing trees", 500, e)
        except Exception as e:
            logger.exception("json import failed")
            return _error("Error importing trees", 500, e)
        return jsonify(result.to_dict()), 200

    @app.post("/api/trees/manual")
    def create_manual_tree():
        body = request.get_json(silent=True)
        if not isinstance(body, dict):
            return _error("Expected a JSON object", 400)
        try:
            with store_session() as store:
                record = create_tree(store, body)
        except InvalidTreeError as e:
            return _error("Invalid tree", 400, e)
        except Exception as e:
            logger.exception("manual tree creation failed")
            return _error("Error creating tree", 500, e)
        return jsonify({"ok": True, "tree": record.to_dict()}), 201

    @app.delete("/api/trees")
    def delete_all_trees():
        try:
            with store_session() as store:
                purge_trees(store)
        except Exception as e:
            logger.exception("delete-all failed")
            return _error("Error deleting trees", 500, e)
        return jsonify({"ok": True}), 200

    @app.post("/api/trees/dedupe")
    def dedupe_trees():
        try:
            with store_session() as store:
                deleted = sweep_duplicates(store)
        except Exception as e:
            logger.exception("duplicate sweep failed")
            return _error("Error removing duplicates", 500, e)
        return jsonify({"ok": True, "deleted": deleted}), 200

    return app
