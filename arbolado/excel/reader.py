from __future__ import annotations

import io
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

"""Workbook reader.

Only the first sheet is read. Row 1 is the header; its cell texts become the
row keys. Blank cells become "" and fully blank rows are dropped.

pandas' default NA parsing is disabled: sidewalk values such as "NA" and
"n/a" are real vocabulary ("Ninguna") and must reach the normalizers as text.
"""

__all__ = [
    "WorkbookReadError",
    "SheetData",
    "read_first_sheet",
]


class WorkbookReadError(Exception):
    """Raised when the upload cannot be read as a spreadsheet."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[dict[str, Any]]


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and pd.isna(value):
        return True
    return isinstance(value, str) and value.strip() == ""


def read_first_sheet(source: bytes | Path) -> SheetData:
    """Read the first sheet of an .xlsx/.xls workbook.

    Parameters
    ----------
    source: raw upload bytes or a path on disk
    """
    if isinstance(source, (bytes, bytearray)):
        if not source:
            raise WorkbookReadError("empty upload")
        handle: Any = io.BytesIO(source)
    else:
        handle = source

    try:
        xls = pd.ExcelFile(handle)
        if not xls.sheet_names:
            raise WorkbookReadError("workbook has no sheets")
        sheet_name = str(xls.sheet_names[0])
        # dtype=object keeps integer cells as int (no float upcast around blanks)
        df = xls.parse(xls.sheet_names[0], header=0, dtype=object, keep_default_na=False)
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"could not read workbook: {e}") from e

    columns = [str(c).strip() for c in df.columns.tolist()]
    rows: list[dict[str, Any]] = []
    for raw in df.itertuples(index=False, name=None):
        values = ["" if _blank(v) else v for v in raw]
        if all(v == "" for v in values):
            continue
        rows.append(dict(zip(columns, values, strict=False)))
    return SheetData(sheet_name=sheet_name, columns=columns, rows=rows)
