import pytest

from parc_import.errors import SchemaError
from parc_import.schema import (
    INFORMATIQUE_SCHEMA,
    PLACEHOLDER,
    TELECOM_SCHEMA,
    FieldKind,
    available_schemas,
    clean_header_name,
    extend_schema,
    get_schema,
)


def test_informatique_field_order():
    assert INFORMATIQUE_SCHEMA.field_names == [
        "type",
        "marque",
        "modele",
        "serial_number",
        "proprietaire",
        "ville_societe",
        "poste",
        "departement",
        "date_acquisition",
        "est_premiere_main",
        "specifications.ram",
        "specifications.disque_dur",
        "specifications.processeur",
        "specifications.os",
        "specifications.autres",
    ]


def test_telecom_adds_chip_number_and_its_own_specifications():
    puce = TELECOM_SCHEMA.get_field("numero_puce")
    assert puce.kind is FieldKind.IDENTIFIER
    assert TELECOM_SCHEMA.min_identifier_length == 10
    assert [f.leaf for f in TELECOM_SCHEMA.nested_fields] == ["type", "capacite", "reseau", "autres"]
    assert not TELECOM_SCHEMA.has_field("specifications.ram")


@pytest.mark.parametrize("schema", [INFORMATIQUE_SCHEMA, TELECOM_SCHEMA], ids=lambda s: s.name)
def test_synonyms_are_unique_across_fields(schema):
    seen = {}
    for fld in schema.fields:
        for syn in {s.casefold() for s in fld.synonyms}:
            assert syn not in seen, f"{syn!r} used by {seen.get(syn)} and {fld.name}"
            seen[syn] = fld.name


def test_defaults_for_placeholder_fields():
    assert INFORMATIQUE_SCHEMA.get_field("marque").default == PLACEHOLDER
    assert INFORMATIQUE_SCHEMA.get_field("type").default == "other"
    assert INFORMATIQUE_SCHEMA.get_field("est_premiere_main").default is True


def test_get_schema_lookup():
    assert get_schema().name == "informatique"
    assert get_schema("TELECOM") is TELECOM_SCHEMA
    assert available_schemas() == ["informatique", "telecom"]
    with pytest.raises(SchemaError):
        get_schema("mobilier")


def test_get_field_unknown_raises():
    with pytest.raises(SchemaError):
        INFORMATIQUE_SCHEMA.get_field("couleur")


def test_extend_schema_merges_synonyms_without_touching_original():
    extended = extend_schema(INFORMATIQUE_SCHEMA, {"marque": ["Fournisseur", "brand"]})

    assert "Fournisseur" in extended.get_field("marque").synonyms
    assert "Fournisseur" not in INFORMATIQUE_SCHEMA.get_field("marque").synonyms
    assert extended.get_field("marque").synonyms.count("brand") == 1
    assert extend_schema(INFORMATIQUE_SCHEMA, None) is INFORMATIQUE_SCHEMA


def test_extend_schema_rejects_unknown_field_and_conflicts():
    with pytest.raises(SchemaError):
        extend_schema(INFORMATIQUE_SCHEMA, {"couleur": ["color"]})
    with pytest.raises(SchemaError):
        extend_schema(INFORMATIQUE_SCHEMA, {"modele": ["brand"]})


def test_clean_header_name_collapses_repeats_and_decorations():
    assert clean_header_name("Marque MARQUE") == "Marque"
    assert clean_header_name("Date achat Date achat") == "Date achat"
    assert clean_header_name("Propriétaire :") == "Propriétaire"
    assert clean_header_name("Serial*") == "Serial"
    assert clean_header_name("") == ""
