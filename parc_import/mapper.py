"""
Row mapping: turn the data rows of a sheet into canonical equipment records.

The column mapping is computed once from the header row; every data row is
then read through it, normalized, split, mined for specifications,
default-filled and diagnosed. Nothing in here raises on malformed cells.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Set

import polars as pl

from .classifier import ColumnMapping, classify_headers
from .config import Settings
from .diagnostics import diagnose, sheet_confidence
from .errors import PreconditionFailure
from .extract import infer_equipment_type, is_unset, mine_specifications, split_combined_fields
from .normalize import cell_to_text, is_blank, normalize_value, row_is_empty
from .schema import SPECIFICATIONS, CanonicalSchema, FieldKind

LOGGER = logging.getLogger(__name__)

# Header is spreadsheet row 1, so the first data row is row 2.
FIRST_DATA_ROW = 2


def _json_cell(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return None if math.isnan(value) else value
    if isinstance(value, (date, datetime)):
        return cell_to_text(value)
    return str(value)


@dataclass
class MappedRecord:
    row_index: int
    data: Dict[str, Any]
    transformations: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    confidence: float = 0.0
    original: List[Any] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "row_index": self.row_index,
            "data": self.data,
            "confidence": round(self.confidence, 4),
            "transformations": list(self.transformations),
            "warnings": list(self.warnings),
            "original": [_json_cell(v) for v in self.original],
        }

    def flat(self) -> Dict[str, Any]:
        """Data with ``specifications`` flattened to dotted keys."""

        flat: Dict[str, Any] = {"row_index": self.row_index}
        for key, value in self.data.items():
            if key == SPECIFICATIONS and isinstance(value, dict):
                for slot, slot_value in value.items():
                    flat[f"{SPECIFICATIONS}.{slot}"] = slot_value
            else:
                flat[key] = value
        flat["confidence"] = round(self.confidence, 4)
        flat["transformations"] = "; ".join(self.transformations)
        flat["warnings"] = "; ".join(self.warnings)
        return flat


@dataclass
class SheetReport:
    schema_name: str
    headers: List[Any]
    mapping: ColumnMapping
    records: List[MappedRecord]
    confidence: float
    total_rows: int
    skipped_rows: int

    @property
    def warning_count(self) -> int:
        return sum(len(r.warnings) for r in self.records)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema_name,
            "headers": [_json_cell(h) for h in self.headers],
            "mapping": self.mapping.to_dict(),
            "confidence": round(self.confidence, 4),
            "total_rows": self.total_rows,
            "skipped_rows": self.skipped_rows,
            "records": [r.to_dict() for r in self.records],
        }

    def to_frame(self) -> pl.DataFrame:
        """One row per record, specifications flattened, for CSV export."""

        rows = [r.flat() for r in self.records]
        if not rows:
            return pl.DataFrame()
        return pl.DataFrame(rows, infer_schema_length=None)


class RecordMapper:
    """Maps single data rows through a precomputed ColumnMapping."""

    def __init__(
        self,
        mapping: ColumnMapping,
        schema: CanonicalSchema,
        settings: Optional[Settings] = None,
        *,
        today: Optional[date] = None,
    ) -> None:
        self.mapping = mapping
        self.schema = schema
        self.settings = settings or Settings()
        self.today = today or date.today()

    def _read_cells(self, row: Sequence[Any], record: MappedRecord) -> tuple[float, Set[str]]:
        data = record.data
        specs: Dict[str, Any] = data[SPECIFICATIONS]
        total = 0.0
        from_sheet: Set[str] = set()

        for match in self.mapping:
            raw = row[match.column_index] if match.column_index < len(row) else None
            if is_blank(raw):
                continue

            fld = self.schema.get_field(match.field)
            normalized = normalize_value(
                raw,
                fld,
                self.schema,
                today=self.today,
                fabricate_dates=self.settings.fabricate_unparseable_dates,
            )
            if fld.is_nested:
                specs[fld.leaf] = normalized.value
            else:
                data[fld.name] = normalized.value
            if normalized.warning:
                record.warnings.append(normalized.warning)
            from_sheet.add(fld.name)
            total += match.confidence
        return total, from_sheet

    def _fill_defaults(self, data: Dict[str, Any], from_sheet: Set[str]) -> None:
        specs: Dict[str, Any] = data.setdefault(SPECIFICATIONS, {})
        for fld in self.schema.fields:
            target = specs if fld.is_nested else data
            key = fld.leaf if fld.is_nested else fld.name
            # An unparseable date read from the sheet stays unset.
            if fld.kind is FieldKind.DATE and fld.name in from_sheet:
                target.setdefault(key, None)
                continue
            if is_unset(target.get(key)):
                target[key] = fld.default_value(self.today)

    def map_row(self, row: Sequence[Any], row_index: int) -> MappedRecord:
        data: Dict[str, Any] = {fld.name: None for fld in self.schema.flat_fields}
        data[SPECIFICATIONS] = {}
        record = MappedRecord(row_index=row_index, data=data, original=list(row))

        total, from_sheet = self._read_cells(row, record)

        record.transformations.extend(split_combined_fields(data, self.schema))
        record.transformations.extend(mine_specifications(data, self.schema))
        if self.settings.infer_type_from_text:
            record.transformations.extend(infer_equipment_type(data, self.schema))

        self._fill_defaults(data, from_sheet)

        if len(self.mapping):
            record.confidence = min(max(total / len(self.mapping), 0.0), 1.0)

        record.warnings.extend(diagnose(data, self.schema, self.today))
        return record


def map_sheet(
    headers: Sequence[Any],
    rows: Sequence[Sequence[Any]],
    schema: Optional[CanonicalSchema] = None,
    settings: Optional[Settings] = None,
    *,
    today: Optional[date] = None,
) -> SheetReport:
    """
    Classify the header row then map every non-empty data row.

    Raises PreconditionFailure when there is no header row or no data row.
    Entirely empty rows are skipped and counted.
    """

    settings = settings or Settings()
    schema = schema or settings.resolve_schema()
    header_list = list(headers)

    if not header_list or row_is_empty(header_list):
        raise PreconditionFailure("Sheet has no header row")
    if not any(not row_is_empty(row) for row in rows):
        raise PreconditionFailure("Sheet must contain a header row and at least one data row")

    mapping = classify_headers(header_list, schema, settings.threshold)
    LOGGER.info(
        "Mapped %d of %d columns to schema '%s' (confidence %.2f)",
        len(mapping),
        mapping.header_count,
        schema.name,
        mapping.confidence,
    )
    if mapping.unmatched:
        LOGGER.info("Unmapped columns: %s", ", ".join(mapping.unmatched))

    mapper = RecordMapper(mapping, schema, settings, today=today)
    records: List[MappedRecord] = []
    skipped = 0
    for offset, row in enumerate(rows):
        if row_is_empty(row):
            skipped += 1
            continue
        records.append(mapper.map_row(row, FIRST_DATA_ROW + offset))

    confidence = sheet_confidence(mapping, records, settings.transformation_bonus)
    report = SheetReport(
        schema_name=schema.name,
        headers=header_list,
        mapping=mapping,
        records=records,
        confidence=confidence,
        total_rows=len(rows),
        skipped_rows=skipped,
    )
    LOGGER.info(
        "Processed %d rows (%d skipped, %d warnings), sheet confidence %.2f",
        len(records),
        skipped,
        report.warning_count,
        confidence,
    )
    return report


def map_raw_sheet(sheet, schema: Optional[CanonicalSchema] = None, settings: Optional[Settings] = None, **kwargs):
    """Run ``map_sheet`` on a loaded RawSheet."""

    return map_sheet(sheet.headers, sheet.rows, schema=schema, settings=settings, **kwargs)
