from __future__ import annotations


class ParcImportError(Exception):
    """Base class for errors raised by the import engine."""


class PreconditionFailure(ParcImportError, ValueError):
    """Raised when a sheet does not hold a header row plus at least one data row."""


class SchemaError(ParcImportError, ValueError):
    """Raised when a schema or one of its fields cannot be resolved."""


class ConfigError(ParcImportError, ValueError):
    """Raised when the YAML settings are invalid."""


class SheetReadError(ParcImportError):
    """Raised when a spreadsheet cannot be read from disk."""
