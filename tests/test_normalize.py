from datetime import date, datetime, time

import pandas as pd
import pytest

from parc_import.normalize import (
    excel_serial_to_date,
    is_blank,
    normalize_boolean,
    normalize_identifier,
    normalize_type,
    normalize_value,
    parse_date,
)
from parc_import.schema import INFORMATIQUE_SCHEMA, TELECOM_SCHEMA

DATE_FIELD = INFORMATIQUE_SCHEMA.get_field("date_acquisition")
TODAY = date(2024, 6, 1)


def test_excel_serial_conversion():
    assert excel_serial_to_date(44386) == date(2021, 7, 9)
    assert excel_serial_to_date(44386.75) == date(2021, 7, 9)
    assert excel_serial_to_date(25569) == date(1970, 1, 1)


@pytest.mark.parametrize(
    "raw",
    [44386, 44386.0, "44386", "2021-07-09", "09/07/2021", "09.07.2021", datetime(2021, 7, 9, 0, 0), date(2021, 7, 9)],
)
def test_date_cells_normalize_to_iso(raw):
    result = normalize_value(raw, DATE_FIELD, INFORMATIQUE_SCHEMA, today=TODAY)
    assert result.value == "2021-07-09"
    assert result.warning is None


def test_unparseable_date_is_left_unset_with_warning():
    result = normalize_value("inconnue", DATE_FIELD, INFORMATIQUE_SCHEMA, today=TODAY)
    assert result.value is None
    assert "inconnue" in result.warning


def test_unparseable_date_can_fall_back_to_today():
    result = normalize_value("inconnue", DATE_FIELD, INFORMATIQUE_SCHEMA, today=TODAY, fabricate_dates=True)
    assert result.value == "2024-06-01"
    assert result.warning


def test_parse_date_ignores_booleans_and_blanks():
    assert parse_date(True) is None
    assert parse_date("  ") is None
    assert parse_date(None) is None


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Laptop Dell", "portable-computer"),
        ("Ordinateur portable", "portable-computer"),
        ("téléphone portable", "phone"),
        ("Unité centrale", "desktop-computer"),
        ("Imprimante laser", "printer"),
        ("iPad", "tablet"),
        ("Switch 24 ports", "router"),
        ("chaise", "other"),
        ("", "other"),
        (None, "other"),
    ],
)
def test_type_normalization(raw, expected):
    assert normalize_type(raw, INFORMATIQUE_SCHEMA) == expected


def test_telecom_type_vocabulary():
    assert normalize_type("Portable", TELECOM_SCHEMA) == "phone"
    assert normalize_type("Modem 4G", TELECOM_SCHEMA) == "router"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Oui", True),
        ("yes", True),
        ("Neuf", True),
        ("première main", True),
        (1, True),
        (1.0, True),
        (True, True),
        ("non", False),
        ("occasion", False),
        (0, False),
        (False, False),
        (None, False),
        (3.5, False),
    ],
)
def test_boolean_normalization_is_total(raw, expected):
    assert normalize_boolean(raw, INFORMATIQUE_SCHEMA) is expected


def test_identifier_strips_separators():
    assert normalize_identifier("06 12-34.56") == "06123456"
    assert normalize_identifier(612345678.0) == "612345678"


def test_free_text_is_trimmed_and_numbers_rendered():
    fld = INFORMATIQUE_SCHEMA.get_field("marque")
    assert normalize_value("  Dell  ", fld, INFORMATIQUE_SCHEMA).value == "Dell"
    assert normalize_value(123.0, fld, INFORMATIQUE_SCHEMA).value == "123"


def test_is_blank():
    assert is_blank(None)
    assert is_blank("   ")
    assert is_blank(float("nan"))
    assert is_blank(pd.NaT)
    assert not is_blank(0)
    assert not is_blank(False)
    assert not is_blank("x")


def test_relative_date_words_are_not_dates():
    assert parse_date("now") is None
    assert parse_date("today") is None

    result = normalize_value("Today", DATE_FIELD, INFORMATIQUE_SCHEMA, today=TODAY)
    assert result.value is None
    assert result.warning


def test_free_text_renders_time_cells_as_text():
    fld = INFORMATIQUE_SCHEMA.get_field("poste")
    assert normalize_value(time(9, 30), fld, INFORMATIQUE_SCHEMA).value == "09:30:00"
    assert normalize_value(None, fld, INFORMATIQUE_SCHEMA).value is None
