"""
Spreadsheet import engine for IT and telecom equipment inventories: header
classification, value normalization and record mapping onto a canonical schema.
"""

from .errors import (  # noqa: F401
    ConfigError,
    ParcImportError,
    PreconditionFailure,
    SchemaError,
    SheetReadError,
)

from .schema import (  # noqa: F401
    DEFAULT_SCHEMA_NAME,
    INFORMATIQUE_SCHEMA,
    PLACEHOLDER,
    TELECOM_SCHEMA,
    CanonicalField,
    CanonicalSchema,
    FieldKind,
    available_schemas,
    clean_header_name,
    extend_schema,
    get_schema,
)

from .similarity import best_similarity, similarity  # noqa: F401

from .classifier import (  # noqa: F401
    DEFAULT_THRESHOLD,
    ColumnMapping,
    ColumnMatch,
    classify_header,
    classify_headers,
)

from .normalize import NormalizedValue, excel_serial_to_date, normalize_value  # noqa: F401

from .extract import infer_equipment_type, mine_specifications, split_combined_fields  # noqa: F401

from .diagnostics import diagnose, sheet_confidence  # noqa: F401

from .config import Settings, load_settings  # noqa: F401

from .mapper import MappedRecord, RecordMapper, SheetReport, map_raw_sheet, map_sheet  # noqa: F401

from .loader import RawSheet, load_sheet  # noqa: F401

__all__ = [
    "ConfigError",
    "ParcImportError",
    "PreconditionFailure",
    "SchemaError",
    "SheetReadError",
    "DEFAULT_SCHEMA_NAME",
    "INFORMATIQUE_SCHEMA",
    "PLACEHOLDER",
    "TELECOM_SCHEMA",
    "CanonicalField",
    "CanonicalSchema",
    "FieldKind",
    "available_schemas",
    "clean_header_name",
    "extend_schema",
    "get_schema",
    "best_similarity",
    "similarity",
    "DEFAULT_THRESHOLD",
    "ColumnMapping",
    "ColumnMatch",
    "classify_header",
    "classify_headers",
    "NormalizedValue",
    "excel_serial_to_date",
    "normalize_value",
    "infer_equipment_type",
    "mine_specifications",
    "split_combined_fields",
    "diagnose",
    "sheet_confidence",
    "Settings",
    "load_settings",
    "MappedRecord",
    "RecordMapper",
    "SheetReport",
    "map_raw_sheet",
    "map_sheet",
    "RawSheet",
    "load_sheet",
]
