"""Stateful, bidirectional cursor over one sheet of a workbook.

The cursor reads rows on demand from a ``SparseGrid`` instead of loading the
whole sheet into Python objects. It tracks its position inside the sheet's
declared used range, fires lifecycle events while reading, and supports
cooperative abort: a record callback returning a truthy value, or a call to
``request_abort()`` from inside a callback, stops a full read after the
current row.

Errors are reported to the registered ``error`` handler when there is one;
the failing call then returns a null result (``None``, ``False`` or ``0``)
and the cursor stays usable. Without an error handler they are raised.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from fast_sheet_reader.services.events import EventHandler, EventRegistry, SheetEvent
from fast_sheet_reader.services.workbook_source import SparseGrid, WorkbookSource
from fast_sheet_reader.sheet_document import CellRange, CellValue, CursorState, Row
from fast_sheet_reader.utils.exceptions import (
    BoundsError,
    DestroyedResourceError,
    FSRError,
    InvalidArgumentError,
    MissingHandlerError,
    SheetNotLoadedError,
)
from fast_sheet_reader.utils.logging import get_logger

logger = get_logger(__name__)

RecordCallback = Callable[[Row, int], Any]
SheetCallback = Callable[[str, int], Any]


class SheetCursor:
    """Reads rows of one loaded sheet, forward, backward or at random.

    Usage::

        cursor = SheetCursor(workbook, "Orders")
        while cursor.move_next():
            handle(cursor.current)

        cursor.read_all(on_record=lambda row, index: handle(row))

    The cursor does not own the workbook: ``destroy()`` drops the reference
    but leaves closing the workbook to whoever opened it.
    """

    def __init__(
        self,
        workbook: WorkbookSource,
        sheet: str | int | None = None,
    ) -> None:
        """Create a cursor, loading ``sheet`` right away when given.

        Args:
            workbook: Source of the sheets to read.
            sheet: Optional sheet name or 0-based index to load.
        """
        self._workbook: WorkbookSource | None = workbook
        self._grid: SparseGrid | None = None
        self._range: CellRange | None = None
        self._sheet_name: str | None = None
        self._start_row = 0
        self._start_col = 0
        self._end_row = -1
        self._end_col = -1
        self._row_index = -1
        self._col_index = -1
        self._current: Row | None = None
        self._loaded = False
        self._started = False
        self._destroyed = False
        self._abort_requested = False
        self.events = EventRegistry()

        if sheet is not None:
            self.load_sheet(sheet)

    # ------------------------------------------------------------------ #
    # Observables
    # ------------------------------------------------------------------ #

    @property
    def workbook(self) -> WorkbookSource | None:
        return self._workbook

    @property
    def sheet_name(self) -> str | None:
        return self._sheet_name

    @property
    def range(self) -> CellRange | None:
        """Used range of the loaded sheet; None for an empty sheet."""
        return self._range

    @property
    def start_row(self) -> int:
        return self._start_row

    @property
    def end_row(self) -> int:
        return self._end_row

    @property
    def start_col(self) -> int:
        return self._start_col

    @property
    def end_col(self) -> int:
        return self._end_col

    @property
    def row_count(self) -> int:
        return self._end_row - self._start_row + 1

    @property
    def col_count(self) -> int:
        return self._end_col - self._start_col + 1

    @property
    def row_index(self) -> int:
        """Current row; ``start_row - 1`` before the first row."""
        return self._row_index

    @property
    def current(self) -> Row | None:
        """Row read by the last successful ``move_next()``."""
        return self._current

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    @property
    def is_destroyed(self) -> bool:
        return self._destroyed

    @property
    def abort_requested(self) -> bool:
        return self._abort_requested

    @property
    def state(self) -> CursorState:
        return CursorState(
            row_index=self._row_index,
            col_index=self._col_index,
            loaded=self._loaded,
            started=self._started,
            destroyed=self._destroyed,
            abort_requested=self._abort_requested,
        )

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    def on(self, event: str | SheetEvent, handler: EventHandler | None) -> SheetCursor:
        """Register the handler for an event, replacing any previous one."""
        self.events.on(event, handler)
        return self

    def load_sheet(self, name_or_index: str | int) -> SheetCursor:
        """Load a sheet and move before its first row.

        Recomputes the used range and clears the start and abort flags.
        """
        if self._is_destroyed():
            return self
        assert self._workbook is not None

        try:
            grid = self._workbook.sheet(name_or_index)
        except FSRError as e:
            self._report(e)
            return self

        cell_range = grid.used_range()
        self._grid = grid
        self._range = cell_range
        self._sheet_name = grid.name
        if cell_range is None:
            self._start_row, self._start_col = 0, 0
            self._end_row, self._end_col = -1, -1
        else:
            self._start_row, self._start_col = cell_range.start_row, cell_range.start_col
            self._end_row, self._end_col = cell_range.end_row, cell_range.end_col
        self._loaded = True
        self._rewind()

        logger.debug(
            "Sheet loaded",
            sheet=self._sheet_name,
            rows=self.row_count,
            cols=self.col_count,
        )
        return self

    def reset(self) -> SheetCursor:
        """Move back before the first row."""
        if not self._is_destroyed():
            self._rewind()
        return self

    def destroy(self) -> None:
        """Release the sheet. Every later call reports DestroyedResourceError."""
        if self._destroyed:
            return
        self._grid = None
        self._workbook = None
        self._range = None
        self._current = None
        self._loaded = False
        self._destroyed = True

    def request_abort(self) -> None:
        """Ask a running ``read_all`` to stop after the current row."""
        self._abort_requested = True

    def __enter__(self) -> SheetCursor:
        return self

    def __exit__(self, *args: Any) -> None:
        self.destroy()

    def __iter__(self) -> Iterator[Row]:
        while self.move_next():
            assert self._current is not None
            yield self._current

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    def move_next(self) -> bool:
        """Advance one row and read it into ``current``.

        Returns:
            True if a row was read, False at the end of the sheet.
        """
        if not self._is_usable():
            return False
        if self._row_index + 1 > self._end_row:
            return False
        self._row_index += 1
        self._current, _ = self._read_row(self._row_index, None)
        return True

    def read_next(self) -> Row | None:
        """Advance and return the next row, or None at the end."""
        if self.move_next():
            return self._current
        return None

    def read_at(self, index: int, on_record: RecordCallback | None = None) -> Row | None:
        """Read the row at an absolute index; negative counts from the end.

        Fires ``start`` (first read of this load only), ``beforerecord``,
        ``cell`` per stored cell, then ``on_record`` or the registered
        ``record`` handler with ``(row, index)``. The cursor position is not
        changed.

        Returns:
            The row, or None if the index is outside the used range.
        """
        if not self._is_usable():
            return None
        index = self._resolve_index(index)
        if not self._check_row(index):
            return None
        row, _ = self._read_row(index, on_record)
        return row

    def peek(self, index: int) -> Row | None:
        """Read a row's values without firing events or moving the cursor."""
        if not self._is_usable():
            return None
        index = self._resolve_index(index)
        if not self._check_row(index):
            return None
        return self._read_values(index)

    def read_many(self, start_index: int, count: int) -> list[Row] | None:
        """Read up to ``count`` rows starting at ``start_index``.

        A negative start index reads backward from that position relative
        to the end; otherwise rows are read forward. Reading stops at the
        edge of the used range, so fewer than ``count`` rows may come back.
        The cursor is left on the last row read.

        Returns:
            The rows read, or None on an invalid count or start index.
        """
        if not self._is_usable():
            return None
        if count < 0:
            self._report(
                InvalidArgumentError(
                    "count cannot be negative.",
                    argument="count",
                    sheet_name=self._sheet_name,
                )
            )
            return None

        rows: list[Row] = []
        if count == 0:
            return rows

        step = -1 if start_index < 0 else 1
        index = self._resolve_index(start_index)
        if not self._check_row(index):
            return None

        while len(rows) < count and self._start_row <= index <= self._end_row:
            self._row_index = index
            row, _ = self._read_row(index, None)
            rows.append(row)
            index += step
        return rows

    def read_all(
        self,
        backwards: bool = False,
        on_record: RecordCallback | None = None,
    ) -> int:
        """Visit every row of the used range in order.

        ``on_record`` (or the registered ``record`` handler) is required.
        Iteration stops right after a row whose callback returns a truthy
        value, or once ``request_abort()`` has been called.

        Args:
            backwards: Visit rows from the last to the first.
            on_record: Callback invoked with ``(row, index)``.

        Returns:
            Number of rows visited, the aborting row included.
        """
        if not self._is_usable():
            return 0
        callback = on_record or self.events.get(SheetEvent.RECORD)
        if callback is None:
            self._report(MissingHandlerError(sheet_name=self._sheet_name))
            return 0

        self._abort_requested = False
        self._started = True
        self.events.fire(SheetEvent.START)

        if backwards:
            indices = range(self._end_row, self._start_row - 1, -1)
        else:
            indices = range(self._start_row, self._end_row + 1)

        count = 0
        for index in indices:
            self._row_index = index
            _, abort = self._read_row(index, callback)
            count += 1
            if abort or self._abort_requested:
                self._abort_requested = True
                logger.debug("Read aborted", sheet=self._sheet_name, row=index)
                break

        self.events.fire(SheetEvent.END, count)
        return count

    def read_all_sheets(
        self,
        on_sheet: SheetCallback | None = None,
        on_record: RecordCallback | None = None,
        backwards: bool = False,
    ) -> int:
        """Load and fully read every sheet in workbook order.

        ``on_sheet(name, index)`` runs after each sheet is loaded and before
        its rows are read; a truthy return skips that sheet and all the
        remaining ones. A record-level abort also ends the walk.

        Returns:
            Total number of rows visited across sheets.
        """
        if self._is_destroyed():
            return 0
        assert self._workbook is not None
        callback = on_record or self.events.get(SheetEvent.RECORD)
        if callback is None:
            self._report(MissingHandlerError(sheet_name=self._sheet_name))
            return 0

        total = 0
        for index, name in enumerate(self._workbook.sheet_names):
            self.load_sheet(name)
            if self._destroyed:
                break
            if self._sheet_name != name:
                continue
            if on_sheet is not None and on_sheet(name, index):
                logger.debug("Sheet walk aborted", sheet=name)
                break
            total += self.read_all(backwards, callback)
            if self._abort_requested:
                break
        return total

    def read_cell(self, col: int | None = None, row: int | None = None) -> CellValue:
        """Read one cell, defaulting to the last-used column and row."""
        if not self._is_usable():
            return None
        assert self._grid is not None
        if row is None:
            row = self._row_index if self._row_index >= self._start_row else self._start_row
        if col is None:
            col = self._col_index if self._col_index >= self._start_col else self._start_col

        if not self._check_row(row):
            return None
        if not self._start_col <= col <= self._end_col:
            self._report(
                BoundsError(
                    col,
                    self._start_col,
                    self._end_col,
                    axis="column",
                    sheet_name=self._sheet_name,
                )
            )
            return None
        return self._grid.get(row, col)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    def _rewind(self) -> None:
        self._row_index = self._start_row - 1
        self._col_index = self._start_col - 1
        self._current = None
        self._started = False
        self._abort_requested = False

    def _resolve_index(self, index: int) -> int:
        """Turn a relative (negative) row index into an absolute one.

        ``-1`` is the last row of the used range.
        """
        if index < 0:
            return self._end_row + 1 + index
        return index

    def _check_row(self, index: int) -> bool:
        if self._start_row <= index <= self._end_row:
            return True
        self._report(
            BoundsError(index, self._start_row, self._end_row, sheet_name=self._sheet_name)
        )
        return False

    def _fire_start(self) -> None:
        if not self._started:
            self._started = True
            self.events.fire(SheetEvent.START)

    def _read_values(self, index: int) -> Row:
        assert self._grid is not None
        grid = self._grid
        return [grid.get(index, col) for col in range(self._start_col, self._end_col + 1)]

    def _read_row(
        self, index: int, on_record: RecordCallback | None
    ) -> tuple[Row, bool]:
        """Read a row firing events; return it with the callback's abort signal."""
        assert self._grid is not None
        grid = self._grid
        self._fire_start()
        self.events.fire(SheetEvent.BEFORE_RECORD, index)

        cell_handler = self.events.get(SheetEvent.CELL)
        row: Row = []
        for col in range(self._start_col, self._end_col + 1):
            self._col_index = col
            value = grid.get(index, col)
            row.append(value)
            if cell_handler is not None and value is not None:
                cell_handler(value, index, col)

        callback = on_record or self.events.get(SheetEvent.RECORD)
        abort = bool(callback(row, index)) if callback is not None else False
        return row, abort

    def _report(self, error: FSRError) -> None:
        """Send an error to the error handler, or raise it."""
        handler = self.events.get(SheetEvent.ERROR)
        if handler is None:
            raise error
        logger.debug(
            "Cursor error reported",
            error_code=error.error_code.value,
            sheet=self._sheet_name,
        )
        handler(error)

    def _is_destroyed(self) -> bool:
        if self._destroyed:
            self._report(DestroyedResourceError())
            return True
        return False

    def _is_usable(self) -> bool:
        if self._is_destroyed():
            return False
        if not self._loaded:
            self._report(SheetNotLoadedError())
            return False
        return True
