from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from .values import to_text

"""Field extraction over spreadsheet rows with unknown header spelling."""

__all__ = [
    "FIELD_ALIASES",
    "extract_field",
]

# Localized header first; alias order is priority order
FIELD_ALIASES: dict[str, tuple[str, ...]] = {
    "species": ("Especie", "species", "Species"),
    "street_name": ("Calle", "streetName", "Street", "StreetName"),
    "street_number": ("Altura", "streetNumber", "StreetNumber", "Alt"),
    "status": ("Estado", "status", "Status"),
    "sidewalk": ("Vereda", "sidewalk", "Sidewalk", "Side"),
    "observations": ("Observacion", "Observaciones", "observations", "Notes"),
}


def extract_field(row: Mapping[str, Any], aliases: Sequence[str]) -> str:
    """Return the text of the first alias present in ``row``.

    For each alias an exact key lookup is tried before a case-insensitive
    match over all keys. Missing values and no match both give "".
    """
    for alias in aliases:
        if alias in row:
            return to_text(row[alias])
        wanted = alias.lower()
        for key in row:
            if str(key).lower() == wanted:
                return to_text(row[key])
    return ""
