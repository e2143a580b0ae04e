"""Field extraction and value normalization for raw spreadsheet rows."""

from .fields import FIELD_ALIASES, extract_field
from .rows import normalize_row, normalize_rows
from .values import (
    clean_text,
    normalize_sidewalk,
    normalize_status_import,
    normalize_status_storage,
    normalize_status_ui,
    only_digits,
)

__all__ = [
    "FIELD_ALIASES",
    "extract_field",
    "normalize_row",
    "normalize_rows",
    "clean_text",
    "only_digits",
    "normalize_status_ui",
    "normalize_status_storage",
    "normalize_status_import",
    "normalize_sidewalk",
]
