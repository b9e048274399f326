import pytest

from parc_import.classifier import classify_header, classify_headers
from parc_import.schema import INFORMATIQUE_SCHEMA, TELECOM_SCHEMA


@pytest.mark.parametrize("schema", [INFORMATIQUE_SCHEMA, TELECOM_SCHEMA], ids=lambda s: s.name)
def test_every_literal_synonym_maps_with_full_confidence(schema):
    for fld in schema.fields:
        for syn in fld.synonyms:
            for header in (syn, syn.upper()):
                candidate = classify_header(header, schema)
                assert candidate is not None, header
                assert candidate.field == fld.name, header
                assert candidate.score == 1.0


def test_truncated_headers_are_recognised():
    departement = classify_header("Départ.", INFORMATIQUE_SCHEMA)
    assert departement.field == "departement"
    assert departement.strategy == "truncated"

    societe = classify_header("Nom de la société", INFORMATIQUE_SCHEMA)
    assert societe.field == "ville_societe"


def test_partial_headers_fall_back_to_similarity():
    candidate = classify_header("marq", INFORMATIQUE_SCHEMA)
    assert candidate.field == "marque"
    assert candidate.strategy == "similarity"

    assert classify_header("RAM (GB)", INFORMATIQUE_SCHEMA).field == "specifications.ram"


def test_threshold_is_strict_and_configurable():
    assert classify_header("marq", INFORMATIQUE_SCHEMA, threshold=0.99) is None


def test_unknown_and_non_string_headers_are_skipped():
    assert classify_header("zzzz", INFORMATIQUE_SCHEMA) is None
    assert classify_header(None, INFORMATIQUE_SCHEMA) is None
    assert classify_header(42, INFORMATIQUE_SCHEMA) is None
    assert classify_header("   ", INFORMATIQUE_SCHEMA) is None


def test_classify_headers_reference_sheet():
    mapping = classify_headers(["Marque", "Type", "Propriétaire", "Date d'acquisition"], INFORMATIQUE_SCHEMA)

    assert mapping.fields == ["marque", "type", "proprietaire", "date_acquisition"]
    assert [m.column_index for m in mapping] == [0, 1, 2, 3]
    assert mapping.confidence == 1.0
    assert mapping.unmatched == ()


def test_equal_confidence_duplicate_goes_to_leftmost_column():
    mapping = classify_headers(["Marque", "Brand", "zzzz", None], INFORMATIQUE_SCHEMA)

    assert len(mapping) == 1
    assert mapping.for_field("marque").column_index == 0
    assert mapping.unmatched == ("Brand", "zzzz")
    assert mapping.header_count == 4


def test_mapping_is_deterministic_and_bounded():
    headers = ["N° série", "Utilisateur", "Départ", "OS", "Disque SSD", "Société", "Achat"]
    first = classify_headers(headers, INFORMATIQUE_SCHEMA)
    second = classify_headers(headers, INFORMATIQUE_SCHEMA)

    assert first.matches == second.matches
    assert all(0.0 <= m.confidence <= 1.0 for m in first)
    assert first.for_field("serial_number").header == "N° série"
    assert first.for_field("proprietaire").header == "Utilisateur"


def test_empty_mapping_has_zero_confidence():
    mapping = classify_headers([], INFORMATIQUE_SCHEMA)
    assert mapping.confidence == 0.0
    assert mapping.to_dict()["columns"] == []


def test_literal_synonym_beats_earlier_fuzzy_match():
    """Loose headers on the left must not steal fields from exact headers further right."""

    mapping = classify_headers(
        ["Statut", "Prix", "Marque", "Numéro de série", "Département"], INFORMATIQUE_SCHEMA
    )

    serial = mapping.for_field("serial_number")
    departement = mapping.for_field("departement")
    assert (serial.column_index, serial.confidence, serial.strategy) == (3, 1.0, "exact")
    assert (departement.column_index, departement.confidence, departement.strategy) == (4, 1.0, "exact")
    assert mapping.for_field("marque").column_index == 2
    assert "Numéro de série" not in mapping.unmatched
    assert "Département" not in mapping.unmatched
    assert [m.column_index for m in mapping] == sorted(m.column_index for m in mapping)
