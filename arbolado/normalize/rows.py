from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from arbolado.models.tree_record import InvalidRow, NormalizedTreeRecord

from .fields import FIELD_ALIASES, extract_field
from .values import clean_text, normalize_sidewalk, normalize_status_ui, normalize_street_number

"""Row normalizer: RawRow -> NormalizedTreeRecord or InvalidRow.

Spreadsheet row numbers count the header as row 1, so the first data row
(index 0) is row 2.
"""

__all__ = [
    "HEADER_ROWS",
    "RowOutcome",
    "NormalizedRows",
    "normalize_row",
    "normalize_rows",
    "record_from_payload",
]

HEADER_ROWS = 1

StatusNormalizer = Callable[[Any], "str | None"]


@dataclass(frozen=True)
class RowOutcome:
    record: NormalizedTreeRecord
    invalid: InvalidRow | None = None

    @property
    def is_valid(self) -> bool:
        return self.invalid is None


@dataclass
class NormalizedRows:
    records: list[NormalizedTreeRecord] = field(default_factory=list)
    invalids: list[InvalidRow] = field(default_factory=list)


def normalize_row(
    row: Mapping[str, Any],
    index: int,
    status_normalizer: StatusNormalizer = normalize_status_ui,
) -> RowOutcome:
    """Normalize one raw row; ``index`` is the 0-based data row index."""
    row_number = index + HEADER_ROWS + 1
    observations = clean_text(extract_field(row, FIELD_ALIASES["observations"]))
    record = NormalizedTreeRecord(
        species=clean_text(extract_field(row, FIELD_ALIASES["species"])),
        street_name=clean_text(extract_field(row, FIELD_ALIASES["street_name"])),
        street_number=normalize_street_number(extract_field(row, FIELD_ALIASES["street_number"])),
        status=status_normalizer(extract_field(row, FIELD_ALIASES["status"])),
        sidewalk=normalize_sidewalk(extract_field(row, FIELD_ALIASES["sidewalk"])),
        observations=observations,
        row_number=row_number,
    )
    if not record.is_valid:
        return RowOutcome(record=record, invalid=InvalidRow(row=row_number))
    return RowOutcome(record=record)


def normalize_rows(
    rows: Iterable[Mapping[str, Any]],
    status_normalizer: StatusNormalizer = normalize_status_ui,
) -> NormalizedRows:
    """Normalize every row in file order; invalid rows never stop the batch."""
    result = NormalizedRows()
    for idx, row in enumerate(rows):
        outcome = normalize_row(row, idx, status_normalizer)
        if outcome.invalid is not None:
            result.invalids.append(outcome.invalid)
        else:
            result.records.append(outcome.record)
    return result


def record_from_payload(
    payload: Mapping[str, Any],
    status_normalizer: StatusNormalizer,
) -> NormalizedTreeRecord:
    """Build a record from an already-normalized JSON object.

    The payload uses the preview field names (streetName, streetNumber, ...);
    values are cleaned again since clients may have edited them.
    """
    row = payload.get("row")
    return NormalizedTreeRecord(
        species=clean_text(payload.get("species")),
        street_name=clean_text(payload.get("streetName")),
        street_number=normalize_street_number(payload.get("streetNumber")),
        status=status_normalizer(payload.get("status")),
        sidewalk=normalize_sidewalk(payload.get("sidewalk")),
        observations=clean_text(payload.get("observations")),
        row_number=row if isinstance(row, int) else None,
    )
