from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from ..models.tree_record import StoredTreeRow
from ..normalize.values import only_digits, status_storage_to_ui

"""Street sections derived from stored trees.

Trees are grouped by street and 100-number block ("700–799"); each block
yields one section per sidewalk side that has trees (no side -> "Ambas").
"""

__all__ = [
    "address_range",
    "general_status",
    "tree_to_dict",
    "street_sections",
]

SECTION_SIDES = ("Norte", "Sur", "Este", "Oeste", "Ambas")

_GENERAL_STATUS = {
    "Sano": "Bueno",
    "Recién Plantado": "Regular",
    "Necesita Poda": "Necesita Intervención",
    "Seco": "Malo",
    "Malo": "Malo",
    "Enfermo": "Malo",
}


def address_range(street_number: str | None) -> str:
    digits = only_digits(street_number) or "0"
    start = int(digits) // 100 * 100
    return f"{start}–{start + 99}"


def general_status(status: str | None) -> str:
    return _GENERAL_STATUS.get(status_storage_to_ui(status), "Bueno")


def _mode(values: Iterable[str]) -> str:
    # Counter.most_common keeps first-seen order among ties
    counts = Counter(values)
    if not counts:
        return ""
    return counts.most_common(1)[0][0]


def tree_to_dict(row: StoredTreeRow) -> dict[str, Any]:
    return {
        "id": str(row.id),
        "species": row.species,
        "status": status_storage_to_ui(row.status),
        "streetName": row.street_name,
        "streetNumber": row.street_number,
        "sidewalk": row.sidewalk,
        "observations": row.observations or "",
    }


def street_sections(rows: Sequence[StoredTreeRow]) -> list[dict[str, Any]]:
    buckets: dict[tuple[str, str], dict[str, Any]] = {}
    for row in rows:
        key = (row.street_name, address_range(row.street_number))
        bucket = buckets.setdefault(key, {"by_side": Counter(), "species": [], "general": []})
        bucket["by_side"][row.sidewalk or "Ambas"] += 1
        bucket["species"].append(row.species)
        bucket["general"].append(general_status(row.status))

    streets: dict[str, dict[str, Any]] = {}
    for (street_name, block), bucket in buckets.items():
        street = streets.setdefault(
            street_name, {"id": f"street-{street_name}", "name": street_name, "sections": []}
        )
        predominant = _mode(bucket["species"]) or "—"
        status = _mode(bucket["general"]) or "Bueno"
        # "Ninguna" trees count toward no section
        for side in SECTION_SIDES:
            count = bucket["by_side"].get(side, 0)
            if count:
                street["sections"].append({
                    "id": f"{street_name}-{block}-{side}",
                    "addressRange": block,
                    "sidewalkSide": side,
                    "predominantSpecies": predominant,
                    "treeCount": count,
                    "generalStatus": status,
                })
    return list(streets.values())
