from __future__ import annotations

from arbolado.models.tree_record import MISSING_KEY_FIELDS
from arbolado.normalize.fields import FIELD_ALIASES, extract_field
from arbolado.normalize.rows import normalize_row, normalize_rows, record_from_payload
from arbolado.normalize.values import normalize_status_import, normalize_status_storage


def test_extract_field_exact_key_first():
    row = {"Especie": "Roble", "species": "Oak"}
    assert extract_field(row, FIELD_ALIASES["species"]) == "Roble"


def test_extract_field_case_insensitive():
    row = {"CALLE": "Mitre", "altura": 120}
    assert extract_field(row, FIELD_ALIASES["street_name"]) == "Mitre"
    assert extract_field(row, FIELD_ALIASES["street_number"]) == "120"


def test_extract_field_alias_order_is_priority():
    # "Calle" is tried (exact, then case-insensitive) before "Street"
    row = {"Street": "English", "calle": "Local"}
    assert extract_field(row, FIELD_ALIASES["street_name"]) == "Local"


def test_extract_field_missing_and_none():
    assert extract_field({"Other": "x"}, ["Especie"]) == ""
    assert extract_field({"Especie": None}, ["Especie"]) == ""


def test_normalize_row_full():
    outcome = normalize_row(
        {
            "Especie": "  Fresno   americano ",
            "Street": "Av.  Mitre",
            "Alt": "1.234",
            "Status": "necesita_poda",
            "Side": "e",
            "Notes": "  poda  urgente ",
        },
        0,
    )
    assert outcome.is_valid
    r = outcome.record
    assert r.species == "Fresno americano"
    assert r.street_name == "Av. Mitre"
    assert r.street_number == "1234"
    assert r.status == "Necesita Poda"
    assert r.sidewalk == "Este"
    assert r.observations == "poda urgente"
    assert r.row_number == 2


def test_validity_gating_reports_row_numbers():
    rows = [
        {"Especie": "Roble", "Calle": "Mitre", "Altura": "10"},
        {"Especie": "", "Calle": "Mitre", "Altura": "12"},
        {"Especie": "Tilo", "Calle": "  ", "Altura": "14"},
        {"Especie": "Tilo", "Calle": "Mitre", "Altura": "s/n"},
        {"Especie": "Tilo", "Calle": "Mitre", "Altura": "16"},
    ]
    result = normalize_rows(rows)
    assert [r.row_number for r in result.records] == [2, 6]
    assert [i.row for i in result.invalids] == [3, 4, 5]
    assert all(i.reason == MISSING_KEY_FIELDS for i in result.invalids)
    assert len(result.records) + len(result.invalids) == len(rows)


def test_normalize_rows_import_status_keeps_unset_as_none():
    result = normalize_rows(
        [{"Especie": "Roble", "Calle": "Mitre", "Altura": "10", "Estado": "regular"}],
        status_normalizer=normalize_status_import,
    )
    assert result.records[0].status is None


def test_record_from_payload_uses_given_status_normalizer():
    payload = {"species": "Roble", "streetName": "Mitre", "streetNumber": "10", "status": "", "row": 7}
    imported = record_from_payload(payload, normalize_status_import)
    manual = record_from_payload(payload, normalize_status_storage)
    assert imported.status is None
    assert manual.status == "Sano"
    assert imported.row_number == 7
