from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any

"""Tree record models.

NormalizedTreeRecord is the canonical unit of import: one physical tree after
field extraction and value normalization. StoredTreeRow is what the store
hands back when listing persisted trees.
"""

__all__ = [
    "NormalizedTreeRecord",
    "InvalidRow",
    "StoredTreeRow",
    "MISSING_KEY_FIELDS",
]

MISSING_KEY_FIELDS = "missing key fields"


@dataclass(frozen=True)
class NormalizedTreeRecord:
    """One tree row after normalization.

    ``status`` holds whichever encoding the producing path asked for: the
    display encoding in a preview, the storage encoding (or None) on import.
    ``row_number`` is the spreadsheet row (header = 1, first data row = 2) or
    None when the record did not come from a workbook.
    """
    species: str
    street_name: str
    street_number: str
    status: str | None = None
    sidewalk: str | None = None
    observations: str = ""
    row_number: int | None = None

    @property
    def is_valid(self) -> bool:
        return bool(self.species and self.street_name and self.street_number)

    @property
    def natural_key(self) -> tuple[str, str, str, str]:
        """Composite key used for duplicate detection (text fields case-folded)."""
        return (
            self.street_name.lower(),
            self.street_number,
            self.species.lower(),
            self.sidewalk or "",
        )

    def with_street_name(self, street_name: str) -> NormalizedTreeRecord:
        return replace(self, street_name=street_name)

    def to_dict(self) -> dict[str, Any]:
        """JSON form shared with the preview client."""
        return {
            "row": self.row_number,
            "species": self.species,
            "streetName": self.street_name,
            "streetNumber": self.street_number,
            "status": self.status,
            "sidewalk": self.sidewalk,
            "observations": self.observations,
        }


@dataclass(frozen=True)
class InvalidRow:
    """A spreadsheet row excluded from the importable set."""
    row: int  # spreadsheet row number (first data row = 2)
    reason: str = MISSING_KEY_FIELDS

    def to_dict(self) -> dict[str, Any]:
        return {"row": self.row, "reason": self.reason}


@dataclass(frozen=True)
class StoredTreeRow:
    """A persisted tree as returned by the store (status in storage encoding)."""
    id: Any
    species: str
    street_name: str
    street_number: str
    status: str | None
    sidewalk: str | None
    observations: str | None
    created_at: datetime | None = None

    @property
    def natural_key(self) -> tuple[str, str, str, str]:
        # Stored values may predate normalization, so trim before comparing
        return (
            (self.street_name or "").strip().lower(),
            (self.street_number or "").strip(),
            (self.species or "").strip().lower(),
            self.sidewalk or "",
        )
