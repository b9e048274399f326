import json

import polars as pl

from parc_import.classifier import classify_headers
from parc_import.cli import MAPPING_COLUMNS, main, mapping_table
from parc_import.schema import INFORMATIQUE_SCHEMA


def _csv(tmp_path, text, name="parc.csv"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_map_writes_json_report(tmp_path):
    source = _csv(tmp_path, "Marque,Type,Propriétaire\nDell,laptop,Jean Dupont Mod-123\n")
    output = tmp_path / "out" / "report.json"

    assert main(["map", str(source), "--output", str(output)]) == 0

    payload = json.loads(output.read_text(encoding="utf-8"))
    assert payload["schema"] == "informatique"
    record = payload["records"][0]
    assert record["data"]["marque"] == "Dell"
    assert record["data"]["modele"] == "Mod-123"
    assert record["transformations"] == ["Séparation propriétaire/modèle"]


def test_map_writes_csv_when_asked(tmp_path):
    source = _csv(tmp_path, "Type,Marque,Numéro de puce\nSmartphone,Samsung,8933012345678\n")
    output = tmp_path / "report.csv"

    assert main(["map", str(source), "--schema", "telecom", "--output", str(output)]) == 0

    frame = pl.read_csv(output, infer_schema_length=0)
    assert frame["type"].to_list() == ["phone"]
    assert frame["numero_puce"].to_list() == ["8933012345678"]


def test_map_prints_to_stdout(tmp_path, capsys):
    source = _csv(tmp_path, "Marque\nHP\n")

    assert main(["map", str(source)]) == 0

    payload = json.loads(capsys.readouterr().out)
    assert payload["records"][0]["data"]["marque"] == "HP"


def test_headers_command_prints_mapping(tmp_path, capsys):
    source = _csv(tmp_path, "Marque,Départ.,zzzz\nDell,Finance,x\n")

    assert main(["headers", str(source)]) == 0

    out = capsys.readouterr().out
    assert "marque" in out
    assert "departement" in out
    assert "Unmapped: zzzz" in out
    assert "exact" in out


def test_failures_exit_with_code_two(tmp_path):
    header_only = _csv(tmp_path, "Marque,Type\n")
    assert main(["map", str(header_only)]) == 2
    assert main(["map", str(tmp_path / "absent.csv")]) == 2

    config = tmp_path / "settings.yaml"
    config.write_text("threshold: 2\n", encoding="utf-8")
    source = _csv(tmp_path, "Marque\nHP\n", name="ok.csv")
    assert main(["map", str(source), "--config", str(config)]) == 2


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "map" in capsys.readouterr().out


def test_mapping_table_is_a_pandas_frame():
    table = mapping_table(classify_headers(["Marque", "Départ."], INFORMATIQUE_SCHEMA))

    assert list(table.columns) == MAPPING_COLUMNS
    assert table["field"].tolist() == ["marque", "departement"]
    assert table["strategy"].tolist() == ["exact", "truncated"]

    assert mapping_table(classify_headers([], INFORMATIQUE_SCHEMA)).empty
