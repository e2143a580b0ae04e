from __future__ import annotations

from ..models.import_result import ImportResult, JsonImportResult

"""SUMMARY line rendering for import runs.

Format:
    SUMMARY mode={excel|json} rows={n} created={n} skipped={n}
    duplicate_skipped={n} replace_all={0|1} elapsed_sec={s}
    batches={n} avg_batch_sec={s} p95_batch_sec={s}
"""

__all__ = [
    "format_seconds",
    "render_summary_line",
]


def format_seconds(value: float) -> str:
    """Render seconds without scientific notation or trailing zeros.

    >>> format_seconds(2.0)
    '2'
    >>> format_seconds(0.0001234)
    '0.000123'
    """
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        return f"{value:.6f}".rstrip('0').rstrip('.')
    return f"{value:.3f}".rstrip('0').rstrip('.')


def render_summary_line(result: ImportResult | JsonImportResult) -> str:
    if isinstance(result, JsonImportResult):
        mode = "json"
        rows = result.received
        replace_all = False
    else:
        mode = "excel"
        rows = result.total_rows
        replace_all = result.replace_all
    return (
        f"SUMMARY mode={mode} "
        f"rows={rows} "
        f"created={result.created} "
        f"skipped={result.skipped} "
        f"duplicate_skipped={result.duplicate_skipped} "
        f"replace_all={int(replace_all)} "
        f"elapsed_sec={format_seconds(result.elapsed_seconds)} "
        f"batches={result.batches} "
        f"avg_batch_sec={format_seconds(result.avg_batch_seconds)} "
        f"p95_batch_sec={format_seconds(result.p95_batch_seconds)}"
    )
