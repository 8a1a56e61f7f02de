"""Tests for the command line entry point."""

import json
import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from fast_sheet_reader import __version__
from fast_sheet_reader.cli import build_parser, main


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self) -> None:
        args = build_parser().parse_args(["book.xlsx"])

        assert args.input == "book.xlsx"
        assert args.output is None
        assert args.sheet is None
        assert args.has_header is True
        assert args.header_prefix == "header_"
        assert args.lower_case_headers is False
        assert args.backwards is False
        assert args.all_sheets is False
        assert args.format == "json"
        assert args.log_level == "WARNING"

    def test_flags(self) -> None:
        args = build_parser().parse_args(
            [
                "book.xlsx",
                "--no-header",
                "--header-prefix",
                "col",
                "--backwards",
                "--all-sheets",
                "--log-level",
                "debug",
                "-s",
                "2",
            ]
        )

        assert args.has_header is False
        assert args.header_prefix == "col"
        assert args.backwards is True
        assert args.all_sheets is True
        assert args.log_level == "DEBUG"
        assert args.sheet == "2"

    def test_missing_input_is_a_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 2

    def test_unsupported_format_is_a_usage_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["book.xlsx", "--format", "csv"])
        assert exc_info.value.code == 2

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["--version"])

        assert exc_info.value.code == 0
        assert __version__ in capsys.readouterr().out


class TestMain:
    """Tests for running reads from the command line."""

    def test_writes_json_to_stdout(
        self, orders_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(orders_xlsx)])

        captured = capsys.readouterr()
        assert exit_code == 0
        assert captured.out.endswith("\n")
        records = json.loads(captured.out)
        assert len(records) == 5
        assert records[0]["Placed"] == "2024-01-15T00:00:00"

    def test_writes_json_to_file(
        self, orders_xlsx: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        output = tmp_path / "out.json"

        exit_code = main([str(orders_xlsx), "-o", str(output), "--sheet", "Notes"])

        assert exit_code == 0
        assert capsys.readouterr().out == ""
        assert json.loads(output.read_text(encoding="utf-8")) == [
            {"Note": "first"},
            {"Note": "second"},
        ]

    def test_sheet_index_and_backwards(
        self, orders_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(orders_xlsx), "-s", "1", "--backwards"]) == 0
        assert json.loads(capsys.readouterr().out) == [
            {"Note": "second"},
            {"Note": "first"},
        ]

    def test_all_sheets(
        self, orders_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(orders_xlsx), "--all-sheets"]) == 0
        assert len(json.loads(capsys.readouterr().out)) == 7

    def test_schema_file(
        self, orders_xlsx: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        schema_path = tmp_path / "schema.json"
        schema_path.write_text(json.dumps({"Note": {"prop": "text"}}))

        exit_code = main([str(orders_xlsx), "-s", "Notes", "--schema", str(schema_path)])

        assert exit_code == 0
        assert json.loads(capsys.readouterr().out) == [
            {"text": "first"},
            {"text": "second"},
        ]

    def test_missing_schema_file(
        self, orders_xlsx: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(orders_xlsx), "--schema", str(tmp_path / "nope.json")])

        assert exit_code == 1
        assert "Cannot read schema file" in capsys.readouterr().err

    def test_unmapped_column_fails(
        self, orders_xlsx: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        schema_path = tmp_path / "schema.json"
        schema_path.write_text(json.dumps({"ID": "id"}))

        exit_code = main([str(orders_xlsx), "--schema", str(schema_path)])

        captured = capsys.readouterr()
        assert exit_code == 1
        assert 'No mapping for column "Name"' in captured.err
        assert json.loads(captured.out) == []

    def test_missing_input_file(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        exit_code = main([str(tmp_path / "missing.xlsx")])

        assert exit_code == 1
        assert "File not found" in capsys.readouterr().err

    def test_unknown_sheet(
        self, orders_xlsx: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main([str(orders_xlsx), "-s", "Missing"]) == 1
        assert "Sheet 'Missing' not found" in capsys.readouterr().err
