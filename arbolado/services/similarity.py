from __future__ import annotations

import unicodedata
from collections import Counter
from collections.abc import Iterable, Sequence

from ..config.loader import DEFAULT_SIMILARITY_THRESHOLD
from ..models.reconciliation import StreetCluster, VariantDetail
from ..models.tree_record import NormalizedTreeRecord

"""Street-name similarity clustering.

Similarity is the Jaccard index of character bigram sets after case-folding
and stripping diacritics. Clustering is a greedy single pass over the sorted
distinct names: the first unassigned name anchors a cluster and absorbs every
later unassigned name scoring >= threshold against it. The anchor (the
lexicographically first member) is the canonical name; frequency plays no
part in that choice.

Suggestions are preview-only. apply_unifications() rewrites records with an
accepted set of suggestions.
"""

__all__ = [
    "SIMILARITY_THRESHOLD",
    "bigrams",
    "similarity",
    "cluster_street_names",
    "unification_map",
    "apply_unifications",
]

SIMILARITY_THRESHOLD = DEFAULT_SIMILARITY_THRESHOLD


def _fold(name: str) -> str:
    decomposed = unicodedata.normalize("NFD", name.lower())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def bigrams(name: str) -> frozenset[str]:
    text = _fold(name)
    return frozenset(text[i:i + 2] for i in range(len(text) - 1))


def similarity(a: str, b: str) -> float:
    grams_a, grams_b = bigrams(a), bigrams(b)
    union = grams_a | grams_b
    if not union:
        return 0.0
    return len(grams_a & grams_b) / len(union)


def cluster_street_names(
    records: Sequence[NormalizedTreeRecord],
    threshold: float = SIMILARITY_THRESHOLD,
) -> list[StreetCluster]:
    """Return multi-member clusters of similar street names in ``records``."""
    counts = Counter(r.street_name for r in records)
    names = sorted(counts)
    grams = {name: bigrams(name) for name in names}

    def score(a: str, b: str) -> float:
        union = grams[a] | grams[b]
        return len(grams[a] & grams[b]) / len(union) if union else 0.0

    assigned: set[str] = set()
    clusters: list[StreetCluster] = []
    for i, anchor in enumerate(names):
        if anchor in assigned:
            continue
        assigned.add(anchor)
        group = [anchor]
        for other in names[i + 1:]:
            if other in assigned:
                continue
            if score(anchor, other) >= threshold:
                group.append(other)
                assigned.add(other)
        if len(group) > 1:
            details = [VariantDetail(name=n, count=counts[n], score=score(anchor, n)) for n in group]
            clusters.append(StreetCluster(canonical=anchor, variants=group, details=details))
    return clusters


def unification_map(clusters: Iterable[StreetCluster]) -> dict[str, str]:
    mapping: dict[str, str] = {}
    for cluster in clusters:
        for variant in cluster.variants:
            mapping[variant] = cluster.canonical
    return mapping


def apply_unifications(
    records: Iterable[NormalizedTreeRecord],
    clusters: Iterable[StreetCluster],
) -> list[NormalizedTreeRecord]:
    """Rewrite variant street names to their canonical spelling.

    Records whose name is not a variant of an accepted cluster are returned
    unchanged, so applying the same clusters twice is a no-op.
    """
    mapping = unification_map(clusters)
    unified: list[NormalizedTreeRecord] = []
    for record in records:
        canonical = mapping.get(record.street_name)
        if canonical is None or canonical == record.street_name:
            unified.append(record)
        else:
            unified.append(record.with_street_name(canonical))
    return unified
