from __future__ import annotations

import itertools

import pytest

from arbolado.models.reconciliation import StreetCluster
from arbolado.models.tree_record import NormalizedTreeRecord
from arbolado.services.similarity import (
    SIMILARITY_THRESHOLD,
    apply_unifications,
    bigrams,
    cluster_street_names,
    similarity,
)

NAMES = ["Av. Siempreviva", "Av Siempreviva", "Belgrano", "BELGRANO", "Belgrano ", "Mitre", "a", ""]


def _rec(street: str, species: str = "Roble", number: str = "10") -> NormalizedTreeRecord:
    return NormalizedTreeRecord(species=species, street_name=street, street_number=number)


def test_threshold_constant():
    assert SIMILARITY_THRESHOLD == 0.85


def test_bigrams_fold_case_and_accents():
    assert bigrams("Peñá") == bigrams("pena")
    assert bigrams("a") == frozenset()


def test_similarity_symmetric():
    for a, b in itertools.product(NAMES, repeat=2):
        assert similarity(a, b) == similarity(b, a)


def test_similarity_self_is_one_for_two_chars_or_more():
    for name in NAMES:
        if len(name) >= 2:
            assert similarity(name, name) == 1.0


def test_similarity_empty_union_is_zero():
    assert similarity("a", "b") == 0.0
    assert similarity("a", "a") == 0.0
    assert similarity("", "") == 0.0


def test_similarity_dotted_abbreviation_below_threshold():
    # 12 shared bigrams out of 15
    assert similarity("Av. Siempreviva", "Av Siempreviva") == pytest.approx(0.8)


def test_cluster_accent_variants_anchor_on_first_sorted_name():
    records = [_rec("Sarmiento"), _rec("Sármiento"), _rec("Sármiento"), _rec("Mitre")]
    clusters = cluster_street_names(records)
    assert len(clusters) == 1
    cluster = clusters[0]
    # canonical is the first in sort order, not the most frequent
    assert cluster.canonical == "Sarmiento"
    assert cluster.variants == ["Sarmiento", "Sármiento"]
    details = {d.name: d for d in cluster.details}
    assert details["Sarmiento"].count == 1
    assert details["Sármiento"].count == 2
    assert details["Sarmiento"].score == 1.0
    assert details["Sármiento"].score == 1.0


def test_single_member_groups_not_reported():
    assert cluster_street_names([_rec("Mitre"), _rec("Belgrano"), _rec("Mitre")]) == []


def test_clustering_is_deterministic():
    records = [_rec(n) for n in ["Rivadavia", "RIVADAVIA", "Rivadávia", "San Martin", "San Martín", "Mitre"]]
    first = cluster_street_names(records)
    second = cluster_street_names(list(reversed(records)))
    assert [c.to_dict() for c in first] == [c.to_dict() for c in second]
    assert [c.canonical for c in first] == ["RIVADAVIA", "San Martin"]


def test_member_assigned_once():
    records = [_rec(n) for n in ["Rivadavia", "RIVADAVIA", "rivadavia"]]
    clusters = cluster_street_names(records)
    assert len(clusters) == 1
    assert sorted(clusters[0].variants) == sorted(["Rivadavia", "RIVADAVIA", "rivadavia"])


def test_lower_threshold_groups_dotted_abbreviation():
    clusters = cluster_street_names([_rec("Av. Siempreviva"), _rec("Av Siempreviva")], threshold=0.8)
    assert clusters[0].canonical == "Av Siempreviva"
    assert clusters[0].variants == ["Av Siempreviva", "Av. Siempreviva"]


def test_apply_unifications_rewrites_and_is_idempotent():
    records = [_rec("Sármiento"), _rec("Sarmiento"), _rec("Mitre")]
    clusters = [StreetCluster(canonical="Sarmiento", variants=["Sarmiento", "Sármiento"])]
    once = apply_unifications(records, clusters)
    assert [r.street_name for r in once] == ["Sarmiento", "Sarmiento", "Mitre"]
    twice = apply_unifications(once, clusters)
    assert twice == once
    # untouched records are the same objects
    assert once[2] is records[2]


def test_cluster_dict_round_trip_feeds_unification():
    records = [_rec("Sármiento"), _rec("Sarmiento")]
    suggested = cluster_street_names(records)
    accepted = [StreetCluster.from_dict(c.to_dict()) for c in suggested]
    assert accepted[0].canonical == "Sarmiento"
    assert {r.street_name for r in apply_unifications(records, accepted)} == {"Sarmiento"}


def test_cluster_from_dict_rejects_bad_variants():
    with pytest.raises(KeyError):
        StreetCluster.from_dict({"variants": ["a"]})
    with pytest.raises(TypeError):
        StreetCluster.from_dict({"canonical": "a", "variants": "a"})
