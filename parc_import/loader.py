from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Union

import openpyxl
import polars as pl
from openpyxl.utils.exceptions import InvalidFileException

from .errors import SheetReadError
from .normalize import row_is_empty

LOGGER = logging.getLogger(__name__)

EXCEL_SUFFIXES = (".xlsx", ".xlsm")
CSV_SUFFIXES = (".csv",)


@dataclass
class RawSheet:
    """Header row plus data rows exactly as read from the file."""

    headers: List[Any]
    rows: List[List[Any]] = field(default_factory=list)
    name: Optional[str] = None
    source: Optional[Path] = None


def _trim_trailing_empty(rows: List[List[Any]]) -> List[List[Any]]:
    end = len(rows)
    while end and row_is_empty(rows[end - 1]):
        end -= 1
    return rows[:end]


def _pad(row: List[Any], width: int) -> List[Any]:
    values = list(row[:width])
    if len(values) < width:
        values.extend([None] * (width - len(values)))
    return values


def _split_header(rows: List[List[Any]], header_row: int, path: Path, sheet_name: Optional[str]) -> RawSheet:
    header_idx = header_row - 1
    if header_idx >= len(rows):
        raise SheetReadError(f"Header row {header_row} not found in {path}")
    headers = list(rows[header_idx])
    # Trailing blank header cells carry no column.
    while headers and headers[-1] is None:
        headers.pop()
    width = len(headers)
    data = [_pad(row, width) for row in rows[header_idx + 1 :]]
    return RawSheet(headers=headers, rows=_trim_trailing_empty(data), name=sheet_name, source=path)


def _get_worksheet(wb, sheet_name: Union[str, int, None]):
    if sheet_name is None:
        for ws in wb.worksheets:
            if any(not row_is_empty(row) for row in ws.iter_rows(max_row=1, values_only=True)):
                return ws
        return wb.worksheets[0]
    if isinstance(sheet_name, int):
        return wb.worksheets[sheet_name]
    return wb[sheet_name]


def read_excel_sheet(path: Path, sheet_name: Union[str, int, None] = None, header_row: int = 1) -> RawSheet:
    """
    Read a worksheet with openpyxl in read-only, values-only mode.

    Without ``sheet_name`` the first sheet whose first row is not empty is used.
    """

    try:
        wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, OSError, KeyError, ValueError) as exc:
        raise SheetReadError(f"Cannot open workbook {path}: {exc}") from exc

    try:
        try:
            ws = _get_worksheet(wb, sheet_name)
        except (KeyError, IndexError) as exc:
            raise SheetReadError(f"Sheet {sheet_name!r} not found in {path}") from exc
        rows = [list(row) for row in ws.iter_rows(values_only=True)]
        LOGGER.debug("Read %d rows from sheet %r of %s", len(rows), ws.title, path)
        return _split_header(rows, header_row, path, ws.title)
    finally:
        wb.close()


def read_csv_sheet(path: Path, header_row: int = 1) -> RawSheet:
    """Read a CSV with polars, every column kept as text."""

    try:
        df = pl.read_csv(path, has_header=False, infer_schema_length=0, truncate_ragged_lines=True)
    except (pl.exceptions.PolarsError, OSError) as exc:
        raise SheetReadError(f"Cannot read CSV {path}: {exc}") from exc
    rows = [list(row) for row in df.iter_rows()]
    return _split_header(rows, header_row, path, None)


def load_sheet(path: Union[str, Path], sheet_name: Union[str, int, None] = None, header_row: int = 1) -> RawSheet:
    """Load an ``.xlsx``/``.xlsm`` worksheet or a ``.csv`` file as a RawSheet."""

    path = Path(path)
    if not path.exists():
        raise SheetReadError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        return read_excel_sheet(path, sheet_name=sheet_name, header_row=header_row)
    if suffix in CSV_SUFFIXES:
        return read_csv_sheet(path, header_row=header_row)
    raise SheetReadError(f"Unsupported file format: {path}")
