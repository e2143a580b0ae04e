from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

"""Reconciliation models: street-name clusters and exact duplicate groups."""

__all__ = [
    "VariantDetail",
    "StreetCluster",
    "DuplicateGroup",
]


@dataclass(frozen=True)
class VariantDetail:
    name: str
    count: int  # records bearing this spelling
    score: float  # similarity to the canonical name

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count, "score": self.score}


@dataclass(frozen=True)
class StreetCluster:
    """A suggested unification of street-name spellings.

    ``variants`` includes the canonical name itself (it anchors the cluster).
    """
    canonical: str
    variants: list[str]
    details: list[VariantDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "canonical": self.canonical,
            "variants": list(self.variants),
            "details": [d.to_dict() for d in self.details],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StreetCluster:
        """Rebuild an accepted suggestion sent back by a client.

        Raises:
            KeyError: ``canonical`` missing
            TypeError: ``variants`` is not a list
        """
        variants = data.get("variants", [])
        if not isinstance(variants, list):
            raise TypeError("variants must be a list")
        return cls(canonical=str(data["canonical"]), variants=[str(v) for v in variants])


@dataclass(frozen=True)
class DuplicateGroup:
    """Records sharing one natural key (text components are lower-cased)."""
    street_name: str
    street_number: str
    species: str
    sidewalk: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "streetName": self.street_name,
            "streetNumber": self.street_number,
            "species": self.species,
            "sidewalk": self.sidewalk,
            "count": self.count,
        }
