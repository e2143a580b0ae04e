from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

from ..db.store import TreeStore
from ..excel.reader import read_first_sheet
from ..logging.error_log import ErrorLogBuffer, ErrorRecord
from ..logging.init import log_summary
from ..models.import_result import ImportResult, JsonImportResult, PreviewResult
from ..models.reconciliation import StreetCluster
from ..models.tree_record import InvalidRow, NormalizedTreeRecord
from ..normalize.rows import normalize_rows, record_from_payload
from ..normalize.values import normalize_status_import, normalize_status_storage
from .batch_loader import BATCH_SIZE, BatchLoadError, load_records
from .duplicates import dedupe_records, find_duplicates, stored_duplicate_ids
from .similarity import SIMILARITY_THRESHOLD, apply_unifications, cluster_street_names
from .summary import render_summary_line

"""Import orchestration.

Entry points used by the HTTP routes and the CLI:

- preview_workbook: normalize, suggest street unifications, report duplicates
- import_rows:      normalize sheet rows, optionally unify street names, drop
                    intra-batch duplicates, batch load
                    (replace_all -> purge + insert in one transaction)
- import_records:   same load path for rows already normalized by a preview,
                    with the street unifications the client accepted
- purge_trees / sweep_duplicates: maintenance over stored rows
- create_tree:      single manual entry (unset status defaults to Sano)

Callers parse the workbook (read_first_sheet) before opening a store, so an
unreadable upload never reaches storage. Nothing here keeps state between
calls; the store is always passed in.
"""

__all__ = [
    "InvalidTreeError",
    "preview_rows",
    "preview_workbook",
    "import_rows",
    "import_records",
    "purge_trees",
    "sweep_duplicates",
    "create_tree",
]

logger = logging.getLogger(__name__)

JSON_SOURCE = "<json>"


class InvalidTreeError(ValueError):
    """A manually entered tree lacks species, street name or number."""


def preview_rows(
    rows: Sequence[Mapping[str, Any]],
    threshold: float = SIMILARITY_THRESHOLD,
) -> PreviewResult:
    normalized = normalize_rows(rows)
    suggestions = cluster_street_names(normalized.records, threshold)
    duplicates = find_duplicates(normalized.records)
    logger.info(
        "preview rows=%s valid=%s invalid=%s suggestions=%s duplicate_groups=%s",
        len(rows), len(normalized.records), len(normalized.invalids), len(suggestions), len(duplicates),
    )
    return PreviewResult(
        rows=normalized.records,
        suggestions=suggestions,
        duplicates=duplicates,
        invalids=normalized.invalids,
    )


def preview_workbook(source: bytes | Path, threshold: float = SIMILARITY_THRESHOLD) -> PreviewResult:
    """Preview a workbook without touching storage.

    Raises:
        WorkbookReadError: the upload is not a readable spreadsheet
    """
    sheet = read_first_sheet(source)
    return preview_rows(sheet.rows, threshold)


def _record_invalids(error_log: ErrorLogBuffer | None, invalids: Sequence[InvalidRow], file_name: str, sheet: str) -> None:
    if error_log is None:
        return
    for inv in invalids:
        error_log.append(ErrorRecord.create(file_name, sheet, inv.row, "MISSING_KEY_FIELDS", inv.reason))


def _record_load_failure(error_log: ErrorLogBuffer | None, error: BatchLoadError, file_name: str, sheet: str) -> None:
    if error_log is None:
        return
    error_log.append(ErrorRecord.create(file_name, sheet, -1, "BATCH_INSERT_ERROR", str(error)))


def _unify(records: list[NormalizedTreeRecord], clusters: Sequence[StreetCluster]) -> list[NormalizedTreeRecord]:
    if not clusters:
        return records
    unified = apply_unifications(records, clusters)
    renamed = sum(1 for before, after in zip(records, unified, strict=True) if before is not after)
    logger.info("unified %s street names across %s records", len(clusters), renamed)
    return unified


def import_rows(
    store: TreeStore,
    rows: Sequence[Mapping[str, Any]],
    *,
    replace_all: bool = False,
    unify: bool = False,
    threshold: float = SIMILARITY_THRESHOLD,
    batch_size: int = BATCH_SIZE,
    error_log: ErrorLogBuffer | None = None,
    file_name: str = "upload",
    sheet_name: str = "",
    on_start: Callable[[int], None] | None = None,
    on_batch: Callable[[int], None] | None = None,
) -> ImportResult:
    """Normalize raw sheet rows and load them.

    With ``unify`` every street-name suggestion is applied before duplicate
    filtering, so spellings that collapse onto one name dedupe together.
    ``on_start`` receives the number of records about to be inserted.

    Raises:
        BatchLoadError: storage failure (nothing kept when replace_all)
    """
    started = time.perf_counter()
    normalized = normalize_rows(rows, status_normalizer=normalize_status_import)
    records = normalized.records
    if unify:
        records = _unify(records, cluster_street_names(records, threshold))
    unique, duplicate_skipped = dedupe_records(records)
    _record_invalids(error_log, normalized.invalids, file_name, sheet_name)
    if normalized.invalids:
        logger.warning("%s: %s rows missing key fields", file_name, len(normalized.invalids))
    if on_start is not None:
        on_start(len(unique))

    try:
        loaded = load_records(
            store,
            unique,
            transactional=replace_all,
            purge=replace_all,
            batch_size=batch_size,
            on_batch=on_batch,
        )
    except BatchLoadError as e:
        _record_load_failure(error_log, e, file_name, sheet_name)
        raise
    finally:
        if error_log is not None:
            error_log.flush()

    result = ImportResult(
        created=loaded.created,
        skipped=len(normalized.invalids),
        duplicate_skipped=duplicate_skipped,
        errors=list(normalized.invalids),
        total_rows=len(rows),
        replace_all=replace_all,
        elapsed_seconds=time.perf_counter() - started,
        batches=loaded.batches,
        avg_batch_seconds=loaded.avg_batch_seconds,
        p95_batch_seconds=loaded.p95_batch_seconds,
    )
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return result


def import_records(
    store: TreeStore,
    payloads: Sequence[Mapping[str, Any]],
    *,
    unifications: Iterable[StreetCluster] = (),
    batch_size: int = BATCH_SIZE,
    error_log: ErrorLogBuffer | None = None,
) -> JsonImportResult:
    """Load rows that already went through a preview (JSON mode).

    ``unifications`` are the suggestions the client accepted; their variant
    names are rewritten to the canonical spelling before duplicate
    filtering. No purge; batches commit independently. Rows still missing
    key fields after cleanup are dropped and counted as skipped.

    Raises:
        BatchLoadError: storage failure
    """
    started = time.perf_counter()
    records: list[NormalizedTreeRecord] = []
    invalids: list[InvalidRow] = []
    for idx, payload in enumerate(payloads):
        record = record_from_payload(payload, normalize_status_import)
        if record.is_valid:
            records.append(record)
        else:
            invalids.append(InvalidRow(row=record.row_number if record.row_number is not None else idx + 2))
    records = _unify(records, list(unifications))
    unique, duplicate_skipped = dedupe_records(records)
    _record_invalids(error_log, invalids, JSON_SOURCE, "")

    try:
        loaded = load_records(store, unique, transactional=False, batch_size=batch_size)
    except BatchLoadError as e:
        _record_load_failure(error_log, e, JSON_SOURCE, "")
        raise
    finally:
        if error_log is not None:
            error_log.flush()

    result = JsonImportResult(
        created=loaded.created,
        received=len(payloads),
        deduped=len(unique),
        duplicate_skipped=duplicate_skipped,
        skipped=len(invalids),
        elapsed_seconds=time.perf_counter() - started,
        batches=loaded.batches,
        avg_batch_seconds=loaded.avg_batch_seconds,
        p95_batch_seconds=loaded.p95_batch_seconds,
    )
    log_summary(render_summary_line(result)[len("SUMMARY "):])
    return result


def purge_trees(store: TreeStore) -> int:
    with store.transaction():
        deleted = store.delete_all()
    logger.info("deleted all stored trees (%s rows)", deleted)
    return deleted


def sweep_duplicates(store: TreeStore) -> int:
    """Delete every stored repeat of a natural key, keeping the oldest row."""
    rows = store.list_rows()
    to_delete = stored_duplicate_ids(rows)
    if not to_delete:
        return 0
    with store.transaction():
        store.delete_ids(to_delete)
    logger.info("duplicate sweep removed %s of %s stored trees", len(to_delete), len(rows))
    return len(to_delete)


def create_tree(store: TreeStore, payload: Mapping[str, Any]) -> NormalizedTreeRecord:
    """Store one manually entered tree.

    Raises:
        InvalidTreeError: species, street name or street number missing
    """
    record = record_from_payload(payload, normalize_status_storage)
    if not record.is_valid:
        raise InvalidTreeError("species, streetName and streetNumber are required")
    with store.transaction():
        store.insert_batch([record])
    logger.info("created tree %s at %s %s", record.species, record.street_name, record.street_number)
    return record
