"""
Per-field value normalization.

Every function here is total: a cell that cannot be coerced into its target
kind degrades to a fallback value plus a warning string, never an exception.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Optional, Sequence

import pandas as pd

from .schema import CanonicalField, CanonicalSchema, FieldKind

# Day offset between the 1900 spreadsheet epoch (1899-12-30) and 1970-01-01.
EXCEL_UNIX_OFFSET_DAYS = 25569
UNIX_EPOCH = date(1970, 1, 1)

DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y", "%Y/%m/%d")

_IDENTIFIER_NOISE = re.compile(r"[\s\-.]")
# Five-digit numbers in text cells are serials exported as text (1927..2173).
_SERIAL_TEXT = re.compile(r"^\d{5}(?:[.,]\d+)?$")
# Free text with no digit at all ("now", "today", "n/a") is never a date.
_HAS_DIGIT = re.compile(r"\d")


@dataclass(frozen=True)
class NormalizedValue:
    value: Any
    warning: Optional[str] = None


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float) and math.isnan(value):
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def row_is_empty(row: Sequence[Any]) -> bool:
    return all(is_blank(cell) for cell in row)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def cell_to_text(value: Any) -> str:
    """Render a cell as trimmed text; integral floats lose their ``.0``."""

    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        return value.date().isoformat() if value.time() == datetime.min.time() else value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()


def normalize_type(value: Any, schema: CanonicalSchema) -> str:
    """
    Resolve free text to a canonical equipment tag.

    Every vocabulary keyword is tested as a substring; the longest keyword
    found wins so "téléphone portable" is a phone, not a laptop.
    """

    text = cell_to_text(value).casefold()
    if not text:
        return schema.fallback_type

    best_tag = schema.fallback_type
    best_len = 0
    for tag, keywords in schema.equipment_types.items():
        for keyword in keywords:
            folded = keyword.casefold()
            if folded in text and len(folded) > best_len:
                best_tag, best_len = tag, len(folded)
    return best_tag


def normalize_boolean(value: Any, schema: CanonicalSchema) -> bool:
    if isinstance(value, bool):
        return value
    return cell_to_text(value).casefold() in schema.affirmative_values


def excel_serial_to_date(serial: float) -> date:
    """Convert a 1900-system spreadsheet serial (e.g. 44386) to a calendar date."""

    return UNIX_EPOCH + timedelta(days=math.floor(float(serial)) - EXCEL_UNIX_OFFSET_DAYS)


def parse_date(value: Any) -> Optional[date]:
    """Best-effort date parsing; returns None when nothing fits."""

    if isinstance(value, bool) or is_blank(value):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    try:
        if _is_number(value):
            return excel_serial_to_date(value)

        text = cell_to_text(value)
        if _SERIAL_TEXT.match(text):
            return excel_serial_to_date(float(text.replace(",", ".")))

        for fmt in DATE_FORMATS:
            try:
                return datetime.strptime(text, fmt).date()
            except ValueError:
                continue

        if not _HAS_DIGIT.search(text):
            return None
        parsed = pd.to_datetime(text, errors="coerce", dayfirst=True)
    except (OverflowError, ValueError, TypeError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date()


def normalize_date(value: Any, today: date, fabricate: bool = False) -> NormalizedValue:
    parsed = parse_date(value)
    if parsed is not None:
        return NormalizedValue(parsed.isoformat())

    shown = cell_to_text(value)
    if fabricate:
        return NormalizedValue(
            today.isoformat(),
            f"Date d'acquisition illisible ({shown!r}), remplacée par la date du jour",
        )
    return NormalizedValue(None, f"Date d'acquisition illisible ({shown!r})")


def normalize_identifier(value: Any) -> str:
    return _IDENTIFIER_NOISE.sub("", cell_to_text(value))


def normalize_text(value: Any) -> Any:
    if value is None or isinstance(value, bool):
        return value
    return cell_to_text(value)


def normalize_value(
    value: Any,
    fld: CanonicalField,
    schema: CanonicalSchema,
    *,
    today: date | None = None,
    fabricate_dates: bool = False,
) -> NormalizedValue:
    """Normalize one raw cell for ``fld`` according to its kind."""

    kind = fld.kind
    if kind is FieldKind.TYPE_ENUM:
        return NormalizedValue(normalize_type(value, schema))
    if kind is FieldKind.BOOLEAN:
        return NormalizedValue(normalize_boolean(value, schema))
    if kind is FieldKind.DATE:
        return normalize_date(value, today or date.today(), fabricate_dates)
    if kind is FieldKind.IDENTIFIER:
        return NormalizedValue(normalize_identifier(value))
    return NormalizedValue(normalize_text(value))
