from __future__ import annotations

import math
import re
from enum import Enum
from typing import Any

"""Value normalizers: free text -> closed vocabulary.

All functions are total: any input is coerced to text first and nothing
raises. Status has two encodings (display and storage) and three entry
points that differ only in what an unrecognized value becomes:

- normalize_status_ui       -> display value, "" when unset (preview review)
- normalize_status_storage  -> storage value, "Sano" when unset (manual form)
- normalize_status_import   -> storage value, None when unset (spreadsheet)
"""

__all__ = [
    "TreeStatus",
    "to_text",
    "clean_text",
    "only_digits",
    "normalize_street_number",
    "normalize_status_ui",
    "normalize_status_storage",
    "normalize_status_import",
    "normalize_sidewalk",
    "status_storage_to_ui",
]

_WHITESPACE_RE = re.compile(r"\s+")
_DIGITS_RE = re.compile(r"\d+")


class TreeStatus(Enum):
    """Canonical tree health status. Value = (display, storage)."""
    SANO = ("Sano", "Sano")
    ENFERMO = ("Enfermo", "Enfermo")
    NECESITA_PODA = ("Necesita Poda", "Necesita_Poda")
    SECO = ("Seco", "Seco")
    RECIEN_PLANTADO = ("Recién Plantado", "Recien_Plantado")
    MALO = ("Malo", "Malo")

    @property
    def display(self) -> str:
        return self.value[0]

    @property
    def storage(self) -> str:
        return self.value[1]


# Accepted spellings, matched after lower-casing and whitespace cleanup
_STATUS_SPELLINGS: dict[str, TreeStatus] = {
    "sano": TreeStatus.SANO,
    "enfermo": TreeStatus.ENFERMO,
    "necesita poda": TreeStatus.NECESITA_PODA,
    "necesita_poda": TreeStatus.NECESITA_PODA,
    "recien plantado": TreeStatus.RECIEN_PLANTADO,
    "recién plantado": TreeStatus.RECIEN_PLANTADO,
    "recien_plantado": TreeStatus.RECIEN_PLANTADO,
    "recién_plantado": TreeStatus.RECIEN_PLANTADO,
    "reciem plantado": TreeStatus.RECIEN_PLANTADO,
    "seco": TreeStatus.SECO,
    "malo": TreeStatus.MALO,
}

_SIDEWALK_SPELLINGS: dict[str, str] = {
    "n": "Norte",
    "norte": "Norte",
    "s": "Sur",
    "sur": "Sur",
    "e": "Este",
    "este": "Este",
    "o": "Oeste",
    "oeste": "Oeste",
    "ambas": "Ambas",
    "ambos": "Ambas",
    "ambas veredas": "Ambas",
    "ambos lados": "Ambas",
    "ninguna": "Ninguna",
    "ninguno": "Ninguna",
    "na": "Ninguna",
    "n/a": "Ninguna",
}


def to_text(value: Any) -> str:
    """Coerce a cell value to text. None/NaN -> "", 742.0 -> "742"."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value)


def clean_text(value: Any) -> str:
    """Collapse whitespace runs to one space and trim (idempotent)."""
    return _WHITESPACE_RE.sub(" ", to_text(value)).strip()


def only_digits(value: Any) -> str:
    """Concatenate every digit run: "123-A-45 B" -> "12345"."""
    return "".join(_DIGITS_RE.findall(to_text(value)))


def normalize_street_number(value: Any) -> str:
    return only_digits(value)


def _match_status(raw: Any) -> TreeStatus | None:
    key = clean_text(raw).lower()
    if not key:
        return None
    return _STATUS_SPELLINGS.get(key)


def normalize_status_ui(raw: Any) -> str:
    status = _match_status(raw)
    return status.display if status is not None else ""


def normalize_status_storage(raw: Any) -> str:
    status = _match_status(raw)
    return status.storage if status is not None else TreeStatus.SANO.storage


def normalize_status_import(raw: Any) -> str | None:
    status = _match_status(raw)
    return status.storage if status is not None else None


def normalize_sidewalk(raw: Any) -> str | None:
    key = clean_text(raw).lower()
    if not key:
        return None
    return _SIDEWALK_SPELLINGS.get(key)


def status_storage_to_ui(value: str | None) -> str:
    status = _match_status(value)
    return status.display if status is not None else ""
