"""Command line entry point: stream a sheet into a JSON array."""

import argparse
import sys
from pathlib import Path

from fast_sheet_reader import __version__
from fast_sheet_reader.config import SUPPORTED_OUTPUT_FORMATS, settings
from fast_sheet_reader.services.sheet_reader import ReadOptions, SheetReader
from fast_sheet_reader.services.workbook_source import parse_sheet_selector
from fast_sheet_reader.utils.exceptions import FSRError, ValidationError
from fast_sheet_reader.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fast-sheet-reader",
        description="Stream the rows of a spreadsheet into a JSON array.",
    )
    parser.add_argument("input", help="Path to the .xlsx file to read")
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output JSON file path (default: standard output)",
    )
    parser.add_argument(
        "-s",
        "--sheet",
        default=None,
        help="Sheet name, or 0-based index when all digits (default: first sheet)",
    )
    parser.add_argument(
        "--all-sheets",
        action="store_true",
        help="Read every sheet in workbook order",
    )
    parser.add_argument(
        "--no-header",
        dest="has_header",
        action="store_false",
        default=settings.has_header,
        help="Treat the first row as data and synthesize column names",
    )
    parser.add_argument(
        "--header-prefix",
        default=settings.header_prefix,
        help="Prefix of synthesized column names (default: %(default)s)",
    )
    parser.add_argument(
        "--lower-case-headers",
        action="store_true",
        default=settings.lower_case_headers,
        help="Lowercase column names (ignored with --schema)",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="JSON file mapping column names to record properties",
    )
    parser.add_argument(
        "--backwards",
        action="store_true",
        help="Read rows from the last to the first",
    )
    parser.add_argument(
        "--format",
        default=settings.output_format,
        choices=sorted(SUPPORTED_OUTPUT_FORMATS),
        help="Output format (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level written to stderr (default: %(default)s)",
    )
    parser.add_argument("--version", action="version", version=__version__)
    return parser


def _load_schema_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ValidationError(
            f"Cannot read schema file {path}: {e.strerror or e}", field="schema"
        ) from e


def main(argv: list[str] | None = None) -> int:
    """Run the command line tool.

    Returns:
        0 on success, 1 when the read failed.
    """
    args = build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        schema = _load_schema_text(args.schema) if args.schema else None
    except FSRError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    options = ReadOptions(
        input=args.input,
        output=args.output if args.output else sys.stdout,
        format=args.format,
        sheetname=parse_sheet_selector(args.sheet),
        has_header=args.has_header,
        header_prefix=args.header_prefix,
        lower_case_headers=args.lower_case_headers,
        schema=schema,
        backwards=args.backwards,
        all_sheets=args.all_sheets,
    )
    with SheetReader(options) as reader:
        result = reader.read()

    if not result.success:
        print(f"error: {result.error}", file=sys.stderr)
        return 1

    if args.output:
        logger.info("Output written", output=args.output, rows=result.rows_processed)
    else:
        sys.stdout.write("\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
