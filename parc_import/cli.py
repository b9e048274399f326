from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from .classifier import ColumnMapping, classify_headers
from .config import Settings, load_settings
from .errors import ConfigError, ParcImportError, PreconditionFailure, SheetReadError
from .loader import load_sheet
from .mapper import SheetReport, map_raw_sheet
from .schema import available_schemas

LOGGER = logging.getLogger(__name__)

EXIT_FAILURE = 2
MAPPING_COLUMNS = ["column", "header", "field", "confidence", "strategy"]


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    if args.schema:
        settings.schema = args.schema
    if args.threshold is not None:
        settings.threshold = args.threshold
    return settings.validate()


def mapping_table(mapping: ColumnMapping) -> pd.DataFrame:
    rows = [
        {
            "column": m.column_index + 1,
            "header": m.header,
            "field": m.field,
            "confidence": round(m.confidence, 3),
            "strategy": m.strategy,
        }
        for m in mapping
    ]
    return pd.DataFrame(rows, columns=MAPPING_COLUMNS)


def write_report(report: SheetReport, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".csv":
        report.to_frame().write_csv(path, include_header=True)
    else:
        with path.open("w", encoding="utf-8") as handle:
            json.dump(report.to_dict(), handle, ensure_ascii=False, indent=2)
    LOGGER.info("Wrote report: %s", path)


def cmd_map(args: argparse.Namespace) -> None:
    settings = _settings_from_args(args)
    sheet = load_sheet(args.file, sheet_name=args.sheet)
    report = map_raw_sheet(sheet, settings=settings)

    if args.output:
        write_report(report, args.output)
    else:
        json.dump(report.to_dict(), sys.stdout, ensure_ascii=False, indent=2)
        sys.stdout.write("\n")


def cmd_headers(args: argparse.Namespace) -> None:
    settings = _settings_from_args(args)
    sheet = load_sheet(args.file, sheet_name=args.sheet)
    mapping = classify_headers(sheet.headers, settings.resolve_schema(), settings.threshold)

    table = mapping_table(mapping)
    if not table.empty:
        print(table.to_string(index=False))
    else:
        print("No column could be mapped.")
    if mapping.unmatched:
        print(f"Unmapped: {', '.join(mapping.unmatched)}")
    print(f"Mapping confidence: {mapping.confidence:.2f}")


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("file", type=Path, help="Spreadsheet to import (.xlsx, .xlsm or .csv)")
    parser.add_argument("--sheet", help="Worksheet name (default: first non-empty sheet)")
    parser.add_argument("--schema", choices=available_schemas(), help="Target schema (default: informatique)")
    parser.add_argument("--config", type=Path, help="Optional YAML settings file")
    parser.add_argument("--threshold", type=float, help="Header acceptance threshold (default: 0.3)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every header decision")


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Map IT and telecom equipment spreadsheets onto the inventory schema.",
    )
    subparsers = parser.add_subparsers(dest="command")

    map_parser = subparsers.add_parser("map", help="Map every row and write the report as JSON (or CSV).")
    _add_common_arguments(map_parser)
    map_parser.add_argument(
        "--output",
        type=Path,
        help="Write the report here instead of stdout; a .csv suffix writes one row per record.",
    )
    map_parser.set_defaults(func=cmd_map)

    headers_parser = subparsers.add_parser("headers", help="Show how the header row maps onto the schema.")
    _add_common_arguments(headers_parser)
    headers_parser.set_defaults(func=cmd_headers)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if not getattr(args, "func", None):
        parser.print_help()
        return 0

    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")

    try:
        args.func(args)
    except (PreconditionFailure, SheetReadError, ConfigError) as exc:
        LOGGER.error("%s", exc)
        return EXIT_FAILURE
    except ParcImportError as exc:
        LOGGER.error("Import failed: %s", exc)
        return EXIT_FAILURE
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
