from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from dotenv import load_dotenv

from .classifier import DEFAULT_THRESHOLD
from .diagnostics import DEFAULT_TRANSFORMATION_BONUS
from .errors import ConfigError, SchemaError
from .schema import DEFAULT_SCHEMA_NAME, CanonicalSchema, extend_schema, get_schema

load_dotenv()

ENV_PREFIX = "PARC_IMPORT_"


def _parse_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on", "oui"}


def _yaml_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        return _parse_bool(value, default)
    return bool(value)


def _parse_float(value: str | None, default: float, name: str) -> float:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {value!r}") from exc


def _ensure_synonyms(raw: Any) -> Dict[str, List[str]]:
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ConfigError("`synonyms` must map field names to lists of headers")
    synonyms: Dict[str, List[str]] = {}
    for field_name, values in raw.items():
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, (list, tuple)):
            raise ConfigError(f"Synonyms for '{field_name}' must be a list")
        synonyms[str(field_name)] = [str(v) for v in values]
    return synonyms


@dataclass
class Settings:
    schema: str = DEFAULT_SCHEMA_NAME
    threshold: float = DEFAULT_THRESHOLD
    fabricate_unparseable_dates: bool = False
    infer_type_from_text: bool = False
    transformation_bonus: float = DEFAULT_TRANSFORMATION_BONUS
    extra_synonyms: Dict[str, List[str]] = field(default_factory=dict)

    def validate(self) -> "Settings":
        if not 0.0 <= self.threshold < 1.0:
            raise ConfigError(f"threshold must be in [0, 1), got {self.threshold}")
        if self.transformation_bonus < 0:
            raise ConfigError("transformation_bonus must not be negative")
        return self

    def resolve_schema(self) -> CanonicalSchema:
        """Registered schema for ``self.schema`` with the configured synonyms merged in."""

        try:
            return extend_schema(get_schema(self.schema), self.extra_synonyms)
        except SchemaError as exc:
            raise ConfigError(str(exc)) from exc


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return raw


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Build Settings from defaults, an optional YAML file, then environment.

    Recognised YAML keys: ``schema``, ``threshold``,
    ``fabricate_unparseable_dates``, ``infer_type_from_text``,
    ``transformation_bonus`` and ``synonyms`` (field -> extra headers).
    Environment variables ``PARC_IMPORT_SCHEMA``, ``PARC_IMPORT_THRESHOLD``,
    ``PARC_IMPORT_FABRICATE_DATES`` and ``PARC_IMPORT_INFER_TYPE`` win over
    the file.
    """

    raw = _read_yaml(Path(path)) if path is not None else {}

    try:
        settings = Settings(
            schema=str(raw.get("schema", DEFAULT_SCHEMA_NAME)),
            threshold=float(raw.get("threshold", DEFAULT_THRESHOLD)),
            fabricate_unparseable_dates=_yaml_bool(raw.get("fabricate_unparseable_dates"), False),
            infer_type_from_text=_yaml_bool(raw.get("infer_type_from_text"), False),
            transformation_bonus=float(raw.get("transformation_bonus", DEFAULT_TRANSFORMATION_BONUS)),
            extra_synonyms=_ensure_synonyms(raw.get("synonyms")),
        )
    except ConfigError:
        raise
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid setting in {path}: {exc}") from exc

    settings.schema = os.getenv(f"{ENV_PREFIX}SCHEMA", settings.schema)
    settings.threshold = _parse_float(
        os.getenv(f"{ENV_PREFIX}THRESHOLD"), settings.threshold, f"{ENV_PREFIX}THRESHOLD"
    )
    settings.fabricate_unparseable_dates = _parse_bool(
        os.getenv(f"{ENV_PREFIX}FABRICATE_DATES"), settings.fabricate_unparseable_dates
    )
    settings.infer_type_from_text = _parse_bool(
        os.getenv(f"{ENV_PREFIX}INFER_TYPE"), settings.infer_type_from_text
    )
    return settings.validate()
