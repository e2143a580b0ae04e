from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence

from ..models.reconciliation import DuplicateGroup
from ..models.tree_record import NormalizedTreeRecord, StoredTreeRow

"""Exact-duplicate detection by natural key.

Natural key: (street name, street number, species, sidewalk or ""), with the
street name and species lower-cased.

- find_duplicates: preview report, removes nothing
- dedupe_records: import-time filter, first occurrence wins
- stored_duplicate_ids: maintenance sweep over persisted rows
"""

__all__ = [
    "find_duplicates",
    "dedupe_records",
    "stored_duplicate_ids",
]


def find_duplicates(records: Sequence[NormalizedTreeRecord]) -> list[DuplicateGroup]:
    """Groups with more than one record, most repeated first."""
    counts = Counter(r.natural_key for r in records)
    groups = [
        DuplicateGroup(
            street_name=key[0],
            street_number=key[1],
            species=key[2],
            sidewalk=key[3],
            count=count,
        )
        for key, count in counts.items()
        if count > 1
    ]
    # sorted() is stable: ties keep first-appearance order
    return sorted(groups, key=lambda g: g.count, reverse=True)


def dedupe_records(
    records: Iterable[NormalizedTreeRecord],
) -> tuple[list[NormalizedTreeRecord], int]:
    """Drop records whose natural key was already seen.

    Returns:
        (unique records in input order, number of records dropped)
    """
    seen: set[tuple[str, str, str, str]] = set()
    unique: list[NormalizedTreeRecord] = []
    skipped = 0
    for record in records:
        key = record.natural_key
        if key in seen:
            skipped += 1
            continue
        seen.add(key)
        unique.append(record)
    return unique, skipped


def stored_duplicate_ids(rows: Iterable[StoredTreeRow]) -> list:
    """Ids of every repeated stored row after its first occurrence.

    ``rows`` must already be ordered by creation time, oldest first.
    """
    seen: set[tuple[str, str, str, str]] = set()
    to_delete = []
    for row in rows:
        key = row.natural_key
        if key in seen:
            to_delete.append(row.id)
        else:
            seen.add(key)
    return to_delete
