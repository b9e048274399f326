from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import SchemaError

PLACEHOLDER = "Non spécifié"
SPECIFICATIONS = "specifications"

_HEADER_DECORATION = re.compile(r"[\s:*]+$")


def clean_header_name(name: str):
    """
    Clean noisy spreadsheet headers before classification.

    Collapses repeated words/phrases ("Marque MARQUE" -> "Marque") and drops
    trailing form decorations such as ``:`` or required-field asterisks.
    """
    if not name:
        return name

    tokens = _HEADER_DECORATION.sub("", str(name).strip()).split()
    n_tokens = len(tokens)
    if n_tokens == 0:
        return ""

    # Detect repeated phrases (e.g., "Date achat Date achat" -> "Date achat").
    for chunk_size in range(1, n_tokens // 2 + 1):
        if n_tokens % chunk_size != 0:
            continue
        chunks = [tokens[i : i + chunk_size] for i in range(0, n_tokens, chunk_size)]
        first_norm = [x.lower() for x in chunks[0]]
        if all([x.lower() for x in c] == first_norm for c in chunks[1:]):
            return clean_header_name(" ".join(chunks[0]))

    cleaned: List[str] = []
    for token in tokens:
        if not cleaned or cleaned[-1].lower() != token.lower():
            cleaned.append(token)
    return " ".join(cleaned)


class FieldKind(str, Enum):
    TYPE_ENUM = "type-enum"
    BOOLEAN = "boolean"
    DATE = "date"
    IDENTIFIER = "identifier"
    FREE_TEXT = "free-text"


def _today_iso(today: date) -> str:
    return today.isoformat()


@dataclass(frozen=True)
class CanonicalField:
    """One target attribute of the import schema."""

    name: str
    synonyms: Tuple[str, ...]
    kind: FieldKind = FieldKind.FREE_TEXT
    truncated_patterns: Tuple[str, ...] = ()
    content_patterns: Tuple[str, ...] = ()
    default: Any = None
    default_factory: Optional[Callable[[date], Any]] = None

    @property
    def is_nested(self) -> bool:
        return "." in self.name

    @property
    def leaf(self) -> str:
        return self.name.split(".", 1)[1] if self.is_nested else self.name

    def default_value(self, today: date) -> Any:
        if self.default_factory is not None:
            return self.default_factory(today)
        return self.default


@dataclass(frozen=True, eq=False)
class CanonicalSchema:
    """Immutable description of the target record and its lookup tables."""

    name: str
    fields: Tuple[CanonicalField, ...]
    equipment_types: Mapping[str, Tuple[str, ...]]
    affirmative_values: frozenset
    fallback_type: str = "other"
    min_identifier_length: int = 0
    _index: Mapping[str, CanonicalField] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        index: Dict[str, CanonicalField] = {}
        for fld in self.fields:
            if fld.name in index:
                raise SchemaError(f"Duplicate field '{fld.name}' in schema '{self.name}'")
            index[fld.name] = fld
        object.__setattr__(self, "_index", MappingProxyType(index))

    def get_field(self, name: str) -> CanonicalField:
        try:
            return self._index[name]
        except KeyError:
            raise SchemaError(f"Schema '{self.name}' has no field '{name}'") from None

    def has_field(self, name: str) -> bool:
        return name in self._index

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    @property
    def flat_fields(self) -> List[CanonicalField]:
        return [f for f in self.fields if not f.is_nested]

    @property
    def nested_fields(self) -> List[CanonicalField]:
        return [f for f in self.fields if f.is_nested]

    def fields_of_kind(self, kind: FieldKind) -> List[CanonicalField]:
        return [f for f in self.fields if f.kind is kind]


def _ft(
    name: str,
    synonyms: Sequence[str],
    *,
    truncated_patterns: Sequence[str] = (),
    content_patterns: Sequence[str] = (),
    **kwargs: Any,
) -> CanonicalField:
    return CanonicalField(
        name=name,
        synonyms=tuple(synonyms),
        truncated_patterns=tuple(truncated_patterns),
        content_patterns=tuple(content_patterns),
        **kwargs,
    )


AFFIRMATIVE_VALUES = frozenset(
    {
        "oui",
        "yes",
        "true",
        "1",
        "vrai",
        "nouveau",
        "new",
        "neuf",
        "première main",
        "premiere main",
        "first hand",
    }
)

INFORMATIQUE_TYPES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "portable-computer": ("laptop", "portable", "notebook", "ordinateur portable", "pc portable", "macbook"),
        "desktop-computer": (
            "desktop",
            "unite centrale",
            "unité centrale",
            "unite_centrale",
            "unité_centrale",
            "pc fixe",
            "ordinateur fixe",
            "workstation",
        ),
        "peripheral": ("clavier", "keyboard", "souris", "mouse", "écran", "ecran", "moniteur", "monitor"),
        "printer": ("imprimante", "printer", "impression"),
        "phone": ("telephone", "téléphone", "phone", "smartphone", "mobile"),
        "router": ("routeur", "router", "switch", "modem", "wifi"),
        "server": ("serveur", "server", "serveur de production", "production server"),
        "tablet": ("tablette", "tablet", "ipad"),
        "other": ("autre", "other", "divers", "misc"),
    }
)

TELECOM_TYPES: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "phone": ("telephone", "téléphone", "phone", "smartphone", "mobile", "portable"),
        "tablet": ("tablette", "tablet", "ipad"),
        "router": ("routeur", "router", "modem", "switch", "commutateur"),
        "other": ("autre", "other"),
    }
)


def _common_flat_fields(*, serial_synonyms: Sequence[str], serial_truncated: Sequence[str]) -> List[CanonicalField]:
    return [
        _ft(
            "type",
            ["type", "categorie", "catégorie", "category", "equipement", "équipement", "nature", "equipment", "appareil"],
            kind=FieldKind.TYPE_ENUM,
            default="other",
        ),
        _ft(
            "marque",
            ["marque", "brand", "fabricant", "manufacturer", "constructeur", "make"],
            default=PLACEHOLDER,
        ),
        _ft(
            "modele",
            ["modele", "modèle", "model", "reference", "référence", "ref", "version"],
            content_patterns=["mod-"],
        ),
        _ft(
            "serial_number",
            serial_synonyms,
            truncated_patterns=serial_truncated,
            content_patterns=["sn-"],
        ),
        _ft(
            "proprietaire",
            [
                "proprietaire",
                "propriétaire",
                "owner",
                "assigné",
                "assigne",
                "assignee",
                "utilisateur",
                "user",
                "responsable",
                "titulaire",
            ],
            truncated_patterns=["proprié"],
            default=PLACEHOLDER,
        ),
        _ft(
            "ville_societe",
            ["ville", "city", "société", "societe", "company", "entreprise", "location", "lieu", "adresse"],
            truncated_patterns=["ociété", "société", "vill", "ville"],
        ),
        _ft(
            "poste",
            ["poste", "position", "fonction", "function", "role", "rôle", "job", "travail", "emploi"],
        ),
        _ft(
            "departement",
            ["département", "departement", "department", "service", "division", "secteur", "direction"],
            truncated_patterns=["département", "départ"],
            default=PLACEHOLDER,
        ),
        _ft(
            "date_acquisition",
            [
                "date",
                "acquisition",
                "achat",
                "purchase",
                "date achat",
                "date d'achat",
                "date acquisition",
                "date d'acquisition",
                "purchase date",
            ],
            kind=FieldKind.DATE,
            default_factory=_today_iso,
        ),
        _ft(
            "est_premiere_main",
            ["première main", "premiere main", "nouveau", "new", "neuf", "first hand"],
            kind=FieldKind.BOOLEAN,
            default=True,
        ),
    ]


INFORMATIQUE_SCHEMA = CanonicalSchema(
    name="informatique",
    fields=tuple(
        _common_flat_fields(
            serial_synonyms=[
                "serial",
                "série",
                "serie",
                "sn",
                "s/n",
                "numéro de série",
                "numero de serie",
                "serial number",
                "n° de série",
                "n° série",
            ],
            serial_truncated=["méro", "numéro"],
        )
        + [
            _ft(
                "specifications.ram",
                ["ram", "mémoire", "memoire", "memory", "mémoire ram"],
                content_patterns=["gb"],
            ),
            _ft(
                "specifications.disque_dur",
                ["disque", "stockage", "storage", "hdd", "ssd", "disque dur", "disk", "drive"],
                content_patterns=["tb", "ssd", "hdd"],
            ),
            _ft(
                "specifications.processeur",
                ["processeur", "cpu", "processor", "chip", "puce"],
                content_patterns=["intel", "amd"],
            ),
            _ft(
                "specifications.os",
                [
                    "os",
                    "système",
                    "systeme",
                    "system",
                    "operating system",
                    "système d'exploitation",
                    "windows",
                    "linux",
                    "macos",
                ],
                truncated_patterns=["ème", "système", "exploita", "exploitation"],
                content_patterns=["windows", "linux", "macos"],
            ),
            _ft(
                "specifications.autres",
                ["autres", "other", "notes", "commentaires", "description", "specs", "spécifications", "caractéristiques"],
            ),
        ]
    ),
    equipment_types=INFORMATIQUE_TYPES,
    affirmative_values=AFFIRMATIVE_VALUES,
)

TELECOM_SCHEMA = CanonicalSchema(
    name="telecom",
    fields=tuple(
        _common_flat_fields(
            serial_synonyms=[
                "serial",
                "série",
                "serie",
                "sn",
                "s/n",
                "numéro de série",
                "numero de serie",
                "serial number",
                "imei",
            ],
            serial_truncated=[],
        )
        + [
            _ft(
                "numero_puce",
                [
                    "puce",
                    "sim",
                    "numero puce",
                    "numéro puce",
                    "sim card",
                    "carte sim",
                    "numero sim",
                    "numéro sim",
                    "numéro de puce",
                ],
                kind=FieldKind.IDENTIFIER,
                truncated_patterns=["puce"],
            ),
            _ft(
                "specifications.type",
                ["genre", "type de forfait", "forfait"],
            ),
            _ft(
                "specifications.capacite",
                ["capacité", "capacite", "capacity", "stockage", "storage", "mémoire", "memoire", "memory"],
                content_patterns=["gb", "go"],
            ),
            _ft(
                "specifications.reseau",
                ["réseau", "reseau", "network", "4g", "5g", "wifi", "bluetooth", "connectivité", "connectivite"],
            ),
            _ft(
                "specifications.autres",
                ["autres", "other", "notes", "commentaires", "description", "specs", "spécifications", "caractéristiques"],
            ),
        ]
    ),
    equipment_types=TELECOM_TYPES,
    affirmative_values=AFFIRMATIVE_VALUES,
    min_identifier_length=10,
)

SCHEMAS: Mapping[str, CanonicalSchema] = MappingProxyType(
    {
        INFORMATIQUE_SCHEMA.name: INFORMATIQUE_SCHEMA,
        TELECOM_SCHEMA.name: TELECOM_SCHEMA,
    }
)
DEFAULT_SCHEMA_NAME = INFORMATIQUE_SCHEMA.name


def available_schemas() -> List[str]:
    return list(SCHEMAS)


def get_schema(name: str | None = None) -> CanonicalSchema:
    """Return a registered schema by name (``informatique`` when omitted)."""

    key = (name or DEFAULT_SCHEMA_NAME).strip().lower()
    if key not in SCHEMAS:
        raise SchemaError(f"Unknown schema '{name}'; available schemas: {', '.join(SCHEMAS)}")
    return SCHEMAS[key]


def _synonym_owner(schema: CanonicalSchema) -> Dict[str, str]:
    owners: Dict[str, str] = {}
    for fld in schema.fields:
        for syn in fld.synonyms:
            owners.setdefault(syn.casefold(), fld.name)
    return owners


def extend_schema(
    schema: CanonicalSchema,
    synonyms: Mapping[str, Iterable[str]] | None = None,
) -> CanonicalSchema:
    """
    Return a copy of ``schema`` with extra header synonyms merged per field.

    Overrides are field -> synonyms. Unknown fields, or a synonym already owned
    by a different field, raise SchemaError so an exact header never resolves
    ambiguously.
    """

    if not synonyms:
        return schema

    owners = _synonym_owner(schema)
    extra: Dict[str, List[str]] = {}
    for field_name, values in synonyms.items():
        fld = schema.get_field(str(field_name))
        bucket = extra.setdefault(fld.name, [])
        for value in values:
            syn = str(value).strip()
            if not syn:
                continue
            owner = owners.get(syn.casefold())
            if owner is not None and owner != fld.name:
                raise SchemaError(f"Synonym '{syn}' for '{fld.name}' is already used by '{owner}'")
            if owner is None:
                owners[syn.casefold()] = fld.name
                bucket.append(syn)

    fields = tuple(
        replace(fld, synonyms=fld.synonyms + tuple(extra[fld.name])) if extra.get(fld.name) else fld
        for fld in schema.fields
    )
    return replace(schema, fields=fields)
