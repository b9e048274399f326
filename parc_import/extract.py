"""
Pattern extraction passes run after column-based mapping.

- ``split_combined_fields`` separates cells that pack two logical values
  together ("Jean Dupont Mod-123", "SN-4821-T Finance").
- ``mine_specifications`` picks hardware specification tokens out of any
  populated text field. False positives on unrelated free text are accepted.
- ``infer_equipment_type`` guesses the equipment tag from free text when no
  type column was mapped.

Every pass mutates the record data in place and returns the notes it produced.
An extracted value is only written to a field that is still unset.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional, Pattern, Tuple

from .normalize import normalize_type
from .schema import PLACEHOLDER, SPECIFICATIONS, CanonicalSchema

MODEL_CODE = re.compile(r"\bmod-(\d+)\b", re.IGNORECASE)
SERIAL_TOKEN = re.compile(r"(?<![\w-])sn-[a-z0-9]+(?:-[a-z0-9]+)*(?![\w-])", re.IGNORECASE)


@dataclass(frozen=True)
class SpecPattern:
    slot: str
    pattern: Pattern[str]
    note: str


SPEC_PATTERNS: Tuple[SpecPattern, ...] = (
    SpecPattern("ram", re.compile(r"\b\d+\s*gb\b(?!\s*(?:ssd|hdd))", re.IGNORECASE), "RAM extraite automatiquement"),
    SpecPattern(
        "disque_dur",
        re.compile(r"\b\d+\s*(?:tb|gb)\s*(?:ssd|hdd)\b", re.IGNORECASE),
        "Disque dur extrait automatiquement",
    ),
    SpecPattern(
        "processeur",
        re.compile(r"\b(?:intel|amd|apple|arm)\s+[\w-]+", re.IGNORECASE),
        "Processeur extrait automatiquement",
    ),
    SpecPattern(
        "os",
        re.compile(r"\b(?:windows|linux|macos|ubuntu|android|ios)\b", re.IGNORECASE),
        "OS extrait automatiquement",
    ),
)


def is_unset(value: Any) -> bool:
    """A field is unset while empty or still holding the placeholder default."""

    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip() or value == PLACEHOLDER
    return False


def split_owner_model(text: str) -> Optional[Tuple[Optional[str], str]]:
    """
    Split "Jean Dupont Mod-123" into ("Jean Dupont", "Mod-123").

    Returns None when the text holds no model code. The owner part is None if
    nothing remains once the code is removed.
    """

    match = MODEL_CODE.search(text)
    if not match:
        return None
    model = f"Mod-{match.group(1)}"
    owner = " ".join((text[: match.start()] + " " + text[match.end() :]).split())
    return (owner or None), model


def split_serial_department(text: str) -> Optional[Tuple[str, str]]:
    """
    Split "SN-4821-T Finance" into ("SN-4821-T", "Finance").

    The token may sit anywhere in the cell. The department is the text after
    it, or the text before it when nothing follows. None when the cell holds
    no token or nothing besides it.
    """

    match = SERIAL_TOKEN.search(text)
    if not match:
        return None
    after = " ".join(text[match.end() :].split())
    before = " ".join(text[: match.start()].split())
    department = after or before
    if not department:
        return None
    return match.group(0), department


def _split_into(
    data: MutableMapping[str, Any],
    source: str,
    target: str,
    splitter: Callable[[str], Optional[Tuple[Any, Any]]],
    note: str,
) -> Optional[str]:
    value = data.get(source)
    if not isinstance(value, str) or is_unset(value):
        return None
    parts = splitter(value)
    if parts is None:
        return None

    cleaned, extracted = parts
    if cleaned == value:
        return None
    data[source] = cleaned
    if is_unset(data.get(target)):
        data[target] = extracted
    return note


def split_combined_fields(data: MutableMapping[str, Any], schema: CanonicalSchema) -> List[str]:
    """Separate owner/model and serial/department cells; returns transformation notes."""

    notes: List[str] = []
    rules = (
        ("proprietaire", "modele", split_owner_model, "Séparation propriétaire/modèle"),
        ("serial_number", "departement", split_serial_department, "Séparation S/N/département"),
    )
    for source, target, splitter, note in rules:
        if not (schema.has_field(source) and schema.has_field(target)):
            continue
        result = _split_into(data, source, target, splitter, note)
        if result:
            notes.append(result)
    return notes


def _text_values(data: MutableMapping[str, Any], schema: CanonicalSchema) -> List[str]:
    values: List[str] = []
    for fld in schema.flat_fields:
        value = data.get(fld.name)
        if isinstance(value, str) and not is_unset(value):
            values.append(value)
    return values


def mine_specifications(data: MutableMapping[str, Any], schema: CanonicalSchema) -> List[str]:
    """
    Scan every populated flat text value for specification tokens.

    Only slots declared by the schema are filled; the first match per slot
    wins and explicitly mapped values are never overwritten.
    """

    specs: Dict[str, Any] = data.setdefault(SPECIFICATIONS, {})
    notes: List[str] = []
    texts = _text_values(data, schema)

    for rule in SPEC_PATTERNS:
        if not schema.has_field(f"{SPECIFICATIONS}.{rule.slot}"):
            continue
        if not is_unset(specs.get(rule.slot)):
            continue
        for text in texts:
            match = rule.pattern.search(text)
            if match:
                specs[rule.slot] = match.group(0)
                notes.append(rule.note)
                break
    return notes


def infer_equipment_type(data: MutableMapping[str, Any], schema: CanonicalSchema) -> List[str]:
    """Fill an unmapped ``type`` from keywords found in the other text fields."""

    if not schema.has_field("type") or not is_unset(data.get("type")):
        return []

    for text in _text_values(data, schema):
        tag = normalize_type(text, schema)
        if tag != schema.fallback_type:
            data["type"] = tag
            return [f"Type détecté: {tag}"]
    return []
