from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, List, Mapping, Sequence

from .normalize import parse_date
from .schema import PLACEHOLDER, CanonicalSchema, FieldKind

if TYPE_CHECKING:
    from .classifier import ColumnMapping
    from .mapper import MappedRecord

DEFAULT_TRANSFORMATION_BONUS = 0.1

MISSING_BRAND = "Marque manquante ou non spécifiée"
MISSING_OWNER = "Propriétaire manquant ou non spécifié"
UNKNOWN_TYPE = 'Type d\'équipement non reconnu, converti en "other"'
FUTURE_DATE = "Date d'acquisition dans le futur"

IDENTIFIER_LABELS = {"numero_puce": "Numéro de puce"}


def _at_placeholder(value: Any) -> bool:
    return value is None or value == PLACEHOLDER or (isinstance(value, str) and not value.strip())


def diagnose(data: Mapping[str, Any], schema: CanonicalSchema, today: date) -> List[str]:
    """Quality warnings for a finished record. Never raises."""

    warnings: List[str] = []

    if schema.has_field("marque") and _at_placeholder(data.get("marque")):
        warnings.append(MISSING_BRAND)
    if schema.has_field("proprietaire") and _at_placeholder(data.get("proprietaire")):
        warnings.append(MISSING_OWNER)
    if schema.has_field("type") and data.get("type") == schema.fallback_type:
        warnings.append(UNKNOWN_TYPE)

    acquired = parse_date(data.get("date_acquisition"))
    if acquired is not None and acquired > today:
        warnings.append(FUTURE_DATE)

    if schema.min_identifier_length:
        for fld in schema.fields_of_kind(FieldKind.IDENTIFIER):
            value = data.get(fld.name)
            if value is None or value == "":
                continue
            if len(str(value)) < schema.min_identifier_length:
                label = IDENTIFIER_LABELS.get(fld.name, fld.name)
                warnings.append(f"{label} semble trop court")

    return warnings


def sheet_confidence(
    mapping: "ColumnMapping",
    records: Sequence["MappedRecord"],
    bonus_weight: float = DEFAULT_TRANSFORMATION_BONUS,
) -> float:
    """
    Sheet-level confidence: mean column confidence plus a bonus for the
    average number of transformation notes per record, capped at 1.0.
    """

    if not mapping.matches:
        return 0.0
    base = mapping.confidence
    if records:
        average_notes = sum(len(r.transformations) for r in records) / len(records)
        base += bonus_weight * average_notes
    return min(max(base, 0.0), 1.0)
