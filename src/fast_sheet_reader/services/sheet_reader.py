"""High-level "read everything" facade over the sheet cursor.

The reader opens a workbook, resolves the header of each sheet it visits,
turns every data row into a record and routes the record to a per-row
callback, to an in-memory list, and/or to a streaming output sink.

Usage::

    from fast_sheet_reader import read

    result = read(input="orders.xlsx", output="orders.json")
    if not result.success:
        print(result.error)

Errors never escape ``read()``: they are passed to ``on_error`` (and to
``error`` observers) and recorded on the returned ReadResult.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

import pandas as pd

from fast_sheet_reader.config import settings
from fast_sheet_reader.output.sinks import JsonArraySink, RowSink, create_sink
from fast_sheet_reader.services.events import SheetEvent
from fast_sheet_reader.services.row_materializer import RowMaterializer
from fast_sheet_reader.services.schema_mapping import Schema, parse_schema
from fast_sheet_reader.services.sheet_cursor import SheetCursor
from fast_sheet_reader.services.workbook_source import WorkbookSource, open_workbook
from fast_sheet_reader.sheet_document import CellValue, ReadResult, Record, Row
from fast_sheet_reader.utils.exceptions import (
    FSRError,
    UnknownEventError,
    ValidationError,
)
from fast_sheet_reader.utils.logging import (
    LogContext,
    RowProgress,
    get_logger,
    timed_operation,
)

logger = get_logger(__name__)

__all__ = [
    "READER_EVENTS",
    "ReadOptions",
    "SheetReader",
    "create_cursor",
    "create_reader",
    "read",
]

InputSource = str | Path | IO[bytes] | WorkbookSource
OutputTarget = str | Path | IO[str]

READER_EVENTS: tuple[str, ...] = ("header", "record", "cell", "end", "error")
"""Events observable through ``SheetReader.on``."""


@dataclass
class ReadOptions:
    """Options of a full read.

    Defaults for the header options and the output format come from
    ``Settings`` (``FSR_*`` environment variables).
    """

    input: InputSource | None = None
    """Workbook path, binary stream, or an already opened WorkbookSource."""

    output: OutputTarget | None = None
    """Path or writable text stream receiving the JSON array."""

    format: str = field(default_factory=lambda: settings.output_format)
    sheetname: str | int | None = None
    """Sheet name or 0-based index; the first sheet when omitted."""

    has_header: bool = field(default_factory=lambda: settings.has_header)
    header_prefix: str = field(default_factory=lambda: settings.header_prefix)
    lower_case_headers: bool = field(
        default_factory=lambda: settings.lower_case_headers
    )
    schema: Schema | Mapping[str, Any] | str | None = None
    """Column mapping; a Schema, a dictionary definition or JSON text."""

    on_header: Callable[[list[str]], Any] | None = None
    on_cell: Callable[[CellValue, int, int], Any] | None = None
    on_record: Callable[[Record, int], Any] | None = None
    """Called with ``(record, row_index)``; a truthy return stops the read."""

    on_finish: Callable[[list[Record], int], Any] | None = None
    """Called with the buffered records (empty when none) and the rows processed."""

    on_error: Callable[[FSRError], Any] | None = None
    on_sheet: Callable[[str, int], Any] | None = None
    """Called per sheet in an all-sheets read; a truthy return stops it."""

    use_memory_for_items: bool = False
    """Buffer records when there is neither ``on_record`` nor ``output``."""

    backwards: bool = False
    all_sheets: bool = False
    epoch1904: bool | None = None
    """Date system override; taken from the workbook when None."""


class SheetReader:
    """Reads whole sheets and emits header, records and output.

    The reader opens and closes workbooks it reads from a path or stream. A
    WorkbookSource passed as ``input`` is never closed by the reader.
    """

    def __init__(self, options: ReadOptions) -> None:
        if options.input is None:
            raise ValidationError("A workbook input is required", field="input")
        self.options = options
        self._workbook: WorkbookSource | None = None
        self._owns_workbook = not isinstance(options.input, WorkbookSource)
        self._observers: dict[str, list[Callable[..., Any]]] = {
            event: [] for event in READER_EVENTS
        }
        self._materializer: RowMaterializer | None = None
        self._cursor: SheetCursor | None = None
        self._sink: RowSink | None = None
        self._items: list[Record] | None = None
        self._error: FSRError | None = None
        self._sheets: list[str] = []
        self._header_row_index: int | None = None
        self._progress: RowProgress | None = None
        self._walk_stopped = False

    # ------------------------------------------------------------------ #
    # Observers
    # ------------------------------------------------------------------ #

    def on(self, event: str, handler: Callable[..., Any]) -> SheetReader:
        """Add an observer for ``header``, ``record``, ``cell``, ``end`` or ``error``.

        Several observers per event are allowed; they run in registration
        order after the matching option callback.
        """
        self._observer_list(event).append(handler)
        return self

    def off(self, event: str, handler: Callable[..., Any] | None = None) -> SheetReader:
        """Remove one observer, or all observers of an event."""
        observers = self._observer_list(event)
        if handler is None:
            observers.clear()
        elif handler in observers:
            observers.remove(handler)
        return self

    def _observer_list(self, event: str) -> list[Callable[..., Any]]:
        observers = self._observers.get(str(event).lower())
        if observers is None:
            raise UnknownEventError(str(event), supported=list(READER_EVENTS))
        return observers

    def _notify(self, event: str, *args: Any) -> None:
        for handler in self._observers[event]:
            handler(*args)

    # ------------------------------------------------------------------ #
    # Observables
    # ------------------------------------------------------------------ #

    @property
    def header(self) -> list[str] | None:
        """Header of the sheet being (or last) read."""
        return self._materializer.header if self._materializer else None

    @property
    def current_row(self) -> Record | None:
        """Most recently materialized record."""
        return self._materializer.current_row if self._materializer else None

    @property
    def rows_processed(self) -> int:
        return self._materializer.rows_processed if self._materializer else 0

    @property
    def input_name(self) -> str:
        source = self.options.input
        if isinstance(source, (str, Path)):
            return str(source)
        name = getattr(source, "name", None) or getattr(source, "source_name", None)
        return str(name or "<workbook>")

    # ------------------------------------------------------------------ #
    # Workbook access
    # ------------------------------------------------------------------ #

    def _get_workbook(self) -> WorkbookSource:
        if self._workbook is None:
            source = self.options.input
            if isinstance(source, WorkbookSource):
                self._workbook = source
            else:
                assert source is not None
                self._workbook = open_workbook(
                    source, max_size_bytes=settings.max_file_size_bytes
                )
        return self._workbook

    def sheet_names(self) -> list[str]:
        """Names of the workbook's sheets, in order."""
        return self._get_workbook().sheet_names

    def create_cursor(self) -> SheetCursor:
        """Create a cursor over the configured sheet.

        The cursor uses the reader's workbook, which stays open until
        ``close()``.
        """
        sheet = self.options.sheetname if self.options.sheetname is not None else 0
        return SheetCursor(self._get_workbook(), sheet)

    def request_abort(self) -> None:
        """Stop a running read after the current row."""
        if self._cursor is not None:
            self._cursor.request_abort()

    def close(self) -> None:
        """Close the workbook if the reader opened it."""
        if self._workbook is not None and self._owns_workbook:
            self._workbook.close()
        self._workbook = None

    def __enter__(self) -> SheetReader:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    def read(self) -> ReadResult:
        """Read the configured sheet (or every sheet) to the end.

        Returns:
            The outcome; ``records`` holds the buffered records when
            ``use_memory_for_items`` applies.
        """
        return self._read(collect=False)

    def read_dataframe(self) -> pd.DataFrame:
        """Read into a pandas DataFrame, one row per record.

        Raises:
            FSRError: If the read failed.
        """
        result = self._read(collect=True)
        result.raise_for_error()
        return pd.DataFrame.from_records(result.records or [])

    def _read(self, collect: bool) -> ReadResult:
        opts = self.options
        opened_here = self._workbook is None
        self._reset_run()
        if collect or (
            opts.use_memory_for_items and opts.on_record is None and opts.output is None
        ):
            self._items = []

        with LogContext(input=self.input_name), timed_operation(logger, "read") as metrics:
            try:
                self._run()
            finally:
                self._finish_sink()
                if opened_here:
                    self.close()

            result = ReadResult(
                records=self._items,
                rows_processed=self.rows_processed,
                sheets=list(self._sheets),
                aborted=self._error is not None
                or self._walk_stopped
                or bool(self._cursor and self._cursor.abort_requested),
                error=self._error,
            )
            metrics.rows_processed = result.rows_processed
            metrics.sheets_read = len(result.sheets)
            if isinstance(self._sink, JsonArraySink):
                metrics.records_written = self._sink.records_written

        if opts.on_finish is not None:
            items = self._items if self._items is not None else []
            opts.on_finish(items, result.rows_processed)
        self._notify("end", result.rows_processed)

        logger.log_read_result(
            self.input_name,
            success=result.success,
            rows_processed=result.rows_processed,
            sheets=result.sheets,
            aborted=result.aborted,
            error_message=str(result.error) if result.error else None,
        )
        return result

    def _reset_run(self) -> None:
        self._materializer = None
        self._cursor = None
        self._sink = None
        self._items = None
        self._error = None
        self._sheets = []
        self._header_row_index = None
        self._progress = None
        self._walk_stopped = False

    def _run(self) -> None:
        opts = self.options
        try:
            schema = parse_schema(opts.schema)
            workbook = self._get_workbook()
            if opts.output is not None:
                self._sink = create_sink(opts.output, opts.format)
                self._sink.write_header_marker()
        except FSRError as e:
            self._fail(e)
            return

        self._materializer = RowMaterializer(
            has_header=opts.has_header,
            header_prefix=opts.header_prefix,
            lower_case_headers=opts.lower_case_headers,
            schema=schema,
            epoch1904=workbook.epoch1904 if opts.epoch1904 is None else opts.epoch1904,
        )

        cursor = SheetCursor(workbook)
        self._cursor = cursor
        cursor.on(SheetEvent.ERROR, self._fail)
        cursor.on(SheetEvent.END, self._on_sheet_end)
        if opts.on_cell is not None or self._observers["cell"]:
            cursor.on(SheetEvent.CELL, self._on_cell)

        logger.info(
            "Reading workbook",
            sheet=opts.sheetname if not opts.all_sheets else "*",
            backwards=opts.backwards,
            streaming=self._sink is not None,
        )

        if opts.all_sheets:
            cursor.read_all_sheets(
                on_sheet=self._on_sheet,
                on_record=self._on_row,
                backwards=opts.backwards,
            )
        else:
            sheet = opts.sheetname if opts.sheetname is not None else 0
            cursor.load_sheet(sheet)
            if self._error is None and cursor.sheet_name is not None:
                self._on_sheet(
                    cursor.sheet_name, workbook.sheet_names.index(cursor.sheet_name)
                )
                cursor.read_all(backwards=opts.backwards, on_record=self._on_row)
        cursor.destroy()

    def _fail(self, error: FSRError) -> None:
        """Record the first error of the run and report it."""
        if self._error is not None:
            return
        self._error = error
        logger.error("Read failed", error_code=error.error_code.value, error=error.message)
        if self.options.on_error is not None:
            self.options.on_error(error)
        self._notify("error", error)

    def _finish_sink(self) -> None:
        if self._sink is None:
            return
        try:
            self._sink.finalize()
        except FSRError as e:
            self._fail(e)

    # ------------------------------------------------------------------ #
    # Cursor callbacks
    # ------------------------------------------------------------------ #

    def _on_sheet(self, name: str, index: int) -> bool:
        """Resolve the header of a freshly loaded sheet."""
        assert self._cursor is not None and self._materializer is not None
        if self.options.all_sheets and self.options.on_sheet is not None:
            if self.options.on_sheet(name, index):
                self._walk_stopped = True
                return True

        cursor = self._cursor
        self._sheets.append(name)
        self._header_row_index = None
        self._progress = RowProgress(
            logger, name, total=cursor.row_count, every=settings.progress_log_interval
        )

        header = self._materializer.begin_sheet(cursor.col_count)
        if header is None and cursor.row_count > 0:
            # Read the header first so backward reads can map their rows
            header_row = cursor.peek(cursor.start_row)
            assert header_row is not None
            header = self._materializer.read_header(header_row)
            self._header_row_index = cursor.start_row
        if header is not None:
            if self.options.on_header is not None:
                self.options.on_header(header)
            self._notify("header", header)
        return False

    def _on_row(self, row: Row, index: int) -> bool:
        """Materialize a row and route the record; True stops the read."""
        assert self._materializer is not None
        if self._progress is not None:
            self._progress.advance()
        if index == self._header_row_index:
            return False

        try:
            record = self._materializer.materialize(row)
        except FSRError as e:
            self._fail(e)
            return True

        abort = False
        if self.options.on_record is not None:
            abort = bool(self.options.on_record(record, index))
        if self._items is not None:
            self._items.append(record)
        self._notify("record", record, index)

        if self._sink is not None:
            try:
                self._sink.write_record(record)
            except FSRError as e:
                self._fail(e)
                return True
        return abort

    def _on_cell(self, value: CellValue, row: int, col: int) -> None:
        if self.options.on_cell is not None:
            self.options.on_cell(value, row, col)
        self._notify("cell", value, row, col)

    def _on_sheet_end(self, count: int) -> None:
        if self._progress is not None:
            self._progress.finish()


def create_reader(**options: Any) -> SheetReader:
    """Create a SheetReader from keyword options (see ReadOptions)."""
    return SheetReader(ReadOptions(**options))


def read(**options: Any) -> ReadResult:
    """Read a workbook in one call (see ReadOptions)."""
    with create_reader(**options) as reader:
        return reader.read()


def create_cursor(
    source: str | Path | IO[bytes],
    sheet: str | int | None = None,
) -> SheetCursor:
    """Open a workbook and return a cursor on one of its sheets.

    The first sheet is loaded when ``sheet`` is omitted. The caller closes
    the workbook (``cursor.workbook.close()``) before destroying the cursor.
    """
    workbook = open_workbook(source, max_size_bytes=settings.max_file_size_bytes)
    return SheetCursor(workbook, sheet if sheet is not None else 0)
