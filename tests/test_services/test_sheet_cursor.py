"""Tests for the stateful sheet cursor."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

import pytest

from fast_sheet_reader.services.sheet_cursor import SheetCursor
from fast_sheet_reader.services.workbook_source import (
    InMemoryGrid,
    InMemoryWorkbook,
    open_workbook,
)
from fast_sheet_reader.sheet_document import CellRange, Row
from fast_sheet_reader.utils.exceptions import (
    BoundsError,
    DestroyedResourceError,
    FSRError,
    InvalidArgumentError,
    MissingHandlerError,
    SheetNotFoundError,
    SheetNotLoadedError,
)


@pytest.fixture
def cursor(numbers_workbook: InMemoryWorkbook) -> SheetCursor:
    return SheetCursor(numbers_workbook, "Numbers")


@pytest.fixture
def errors(cursor: SheetCursor) -> list[FSRError]:
    """Errors reported to the cursor's error handler."""
    reported: list[FSRError] = []
    cursor.on("error", reported.append)
    return reported


class TestLoading:
    """Tests for sheet loading and observables."""

    def test_range_and_sentinel_after_load(self, cursor: SheetCursor) -> None:
        assert cursor.sheet_name == "Numbers"
        assert cursor.range == CellRange(0, 0, 9, 1)
        assert (cursor.start_row, cursor.end_row) == (0, 9)
        assert (cursor.start_col, cursor.end_col) == (0, 1)
        assert cursor.row_count == 10
        assert cursor.col_count == 2
        assert cursor.row_index == -1
        assert cursor.current is None

    def test_constructed_without_sheet_is_unloaded(
        self, numbers_workbook: InMemoryWorkbook
    ) -> None:
        cursor = SheetCursor(numbers_workbook)

        assert not cursor.is_loaded
        with pytest.raises(SheetNotLoadedError):
            cursor.move_next()

    def test_load_by_index(self, orders_workbook: InMemoryWorkbook) -> None:
        cursor = SheetCursor(orders_workbook, 1)
        assert cursor.sheet_name == "Notes"

    def test_unknown_sheet_raises_without_handler(
        self, orders_workbook: InMemoryWorkbook
    ) -> None:
        with pytest.raises(SheetNotFoundError):
            SheetCursor(orders_workbook, "Missing")

    def test_unknown_sheet_keeps_previous_sheet(
        self, orders_workbook: InMemoryWorkbook
    ) -> None:
        reported: list[FSRError] = []
        cursor = SheetCursor(orders_workbook, "Orders").on("error", reported.append)

        cursor.load_sheet("Missing")

        assert isinstance(reported[0], SheetNotFoundError)
        assert cursor.sheet_name == "Orders"
        assert cursor.is_loaded

    def test_load_sheet_resets_position(self, orders_workbook: InMemoryWorkbook) -> None:
        cursor = SheetCursor(orders_workbook, "Orders")
        cursor.move_next()
        cursor.move_next()

        cursor.load_sheet("Notes")

        assert cursor.row_index == -1
        assert cursor.row_count == 3

    def test_offset_range(self) -> None:
        grid = InMemoryGrid.from_rows(
            "Offset", [["a", "b"], ["c", "d"], ["e", "f"]], start_row=2, start_col=1
        )
        cursor = SheetCursor(InMemoryWorkbook([grid]), "Offset")

        assert cursor.range == CellRange(2, 1, 4, 2)
        assert cursor.row_index == 1
        assert cursor.read_next() == ["a", "b"]
        assert cursor.read_at(-1) == ["e", "f"]
        with pytest.raises(BoundsError):
            cursor.read_at(0)

    def test_state_snapshot(self, cursor: SheetCursor) -> None:
        cursor.move_next()
        state = cursor.state

        assert state.row_index == 0
        assert state.col_index == 1
        assert state.loaded
        assert state.started
        assert not state.destroyed
        assert not state.abort_requested


class TestSequentialReading:
    """Tests for move_next, read_next and iteration."""

    def test_move_next_reads_rows_in_order(self, cursor: SheetCursor) -> None:
        assert cursor.move_next()
        assert cursor.current == [0, 0]
        assert cursor.move_next()
        assert cursor.current == [1, 10]
        assert cursor.row_index == 1

    def test_move_next_at_end_returns_false_without_moving(
        self, cursor: SheetCursor
    ) -> None:
        while cursor.move_next():
            pass

        assert cursor.row_index == 9
        assert not cursor.move_next()
        assert cursor.row_index == 9
        assert cursor.current == [9, 90]

    def test_read_next_returns_none_at_end(self, cursor: SheetCursor) -> None:
        rows = [cursor.read_next() for _ in range(11)]

        assert rows[9] == [9, 90]
        assert rows[10] is None

    def test_iteration_yields_every_row(self, cursor: SheetCursor) -> None:
        assert [row[0] for row in cursor] == list(range(10))

    def test_reset_moves_before_first_row(self, cursor: SheetCursor) -> None:
        cursor.move_next()
        cursor.move_next()

        cursor.reset()

        assert cursor.row_index == -1
        assert cursor.read_next() == [0, 0]

    def test_move_next_fires_registered_record_handler(
        self, cursor: SheetCursor
    ) -> None:
        seen: list[int] = []
        cursor.on("record", lambda row, index: seen.append(index))

        cursor.move_next()
        cursor.move_next()

        assert seen == [0, 1]


class TestRandomAccess:
    """Tests for read_at, peek and read_cell."""

    def test_read_at_positive_index(self, cursor: SheetCursor) -> None:
        assert cursor.read_at(4) == [4, 40]
        assert cursor.row_index == -1

    @pytest.mark.parametrize(("index", "expected"), [(-1, 9), (-3, 7), (-10, 0)])
    def test_read_at_negative_index_counts_from_end(
        self, cursor: SheetCursor, index: int, expected: int
    ) -> None:
        row = cursor.read_at(index)
        assert row is not None
        assert row[0] == expected

    @pytest.mark.parametrize("index", [10, 100, -11])
    def test_read_at_out_of_bounds_raises(self, cursor: SheetCursor, index: int) -> None:
        with pytest.raises(BoundsError) as exc_info:
            cursor.read_at(index)

        assert exc_info.value.lower == 0
        assert exc_info.value.upper == 9

    def test_read_at_out_of_bounds_reports_to_handler(
        self, cursor: SheetCursor, errors: list[FSRError]
    ) -> None:
        cursor.move_next()

        assert cursor.read_at(10) is None
        assert isinstance(errors[0], BoundsError)
        assert cursor.row_index == 0

    def test_read_at_fires_events_in_order(self, cursor: SheetCursor) -> None:
        log: list[tuple[Any, ...]] = []
        cursor.on("start", lambda: log.append(("start",)))
        cursor.on("beforerecord", lambda index: log.append(("before", index)))
        cursor.on("cell", lambda value, row, col: log.append(("cell", row, col)))

        cursor.read_at(3, on_record=lambda row, index: log.append(("record", index)))

        assert log == [
            ("start",),
            ("before", 3),
            ("cell", 3, 0),
            ("cell", 3, 1),
            ("record", 3),
        ]

    def test_start_fires_once_per_load(self, cursor: SheetCursor) -> None:
        starts: list[int] = []
        cursor.on("start", lambda: starts.append(1))

        cursor.read_at(0)
        cursor.read_at(1)
        cursor.move_next()

        assert len(starts) == 1

    def test_every_full_read_pairs_start_with_end(self, cursor: SheetCursor) -> None:
        log: list[str] = []
        cursor.on("start", lambda: log.append("start"))
        cursor.on("end", lambda count: log.append("end"))

        cursor.read_all(on_record=lambda row, index: None)
        cursor.read_all(on_record=lambda row, index: None)

        assert log == ["start", "end", "start", "end"]

    def test_full_read_after_read_at_fires_start(self, cursor: SheetCursor) -> None:
        log: list[str] = []
        cursor.on("start", lambda: log.append("start"))
        cursor.on("end", lambda count: log.append("end"))

        cursor.read_at(2)
        cursor.read_all(on_record=lambda row, index: None)

        assert log == ["start", "start", "end"]

    def test_cell_event_skips_absent_cells(self) -> None:
        workbook = InMemoryWorkbook.from_rows({"Gaps": [["a", None, "c"]]})
        cursor = SheetCursor(workbook, "Gaps")
        cells: list[tuple[Any, int, int]] = []
        cursor.on("cell", lambda value, row, col: cells.append((value, row, col)))

        assert cursor.read_at(0) == ["a", None, "c"]
        assert cells == [("a", 0, 0), ("c", 0, 2)]

    def test_peek_fires_no_events_and_keeps_position(self, cursor: SheetCursor) -> None:
        fired: list[str] = []
        cursor.on("start", lambda: fired.append("start"))
        cursor.on("record", lambda row, index: fired.append("record"))

        assert cursor.peek(-1) == [9, 90]
        assert fired == []
        assert cursor.row_index == -1
        assert not cursor.state.started

    def test_read_cell_defaults_to_range_start(self, cursor: SheetCursor) -> None:
        assert cursor.read_cell() == 0

    def test_read_cell_defaults_to_last_used_cell(self, cursor: SheetCursor) -> None:
        cursor.move_next()
        cursor.move_next()

        assert cursor.read_cell() == 10
        assert cursor.read_cell(0) == 1
        assert cursor.read_cell(1, 5) == 50

    def test_read_cell_column_out_of_bounds(
        self, cursor: SheetCursor, errors: list[FSRError]
    ) -> None:
        assert cursor.read_cell(2, 0) is None
        error = errors[0]
        assert isinstance(error, BoundsError)
        assert error.axis == "column"

    def test_read_cell_row_out_of_bounds(self, cursor: SheetCursor) -> None:
        with pytest.raises(BoundsError):
            cursor.read_cell(0, 10)


class TestReadMany:
    """Tests for read_many."""

    def test_forward(self, cursor: SheetCursor) -> None:
        rows = cursor.read_many(2, 3)

        assert rows == [[2, 20], [3, 30], [4, 40]]
        assert cursor.row_index == 4

    def test_negative_start_reads_backward(self, cursor: SheetCursor) -> None:
        assert cursor.read_many(-1, 3) == [[9, 90], [8, 80], [7, 70]]

    def test_stops_at_range_boundary(self, cursor: SheetCursor) -> None:
        forward = cursor.read_many(8, 5)
        backward = cursor.read_many(-9, 5)

        assert forward is not None and len(forward) == 2
        assert backward == [[1, 10], [0, 0]]

    def test_zero_count_returns_empty_list(self, cursor: SheetCursor) -> None:
        assert cursor.read_many(0, 0) == []

    def test_negative_count(self, cursor: SheetCursor, errors: list[FSRError]) -> None:
        assert cursor.read_many(0, -1) is None
        assert isinstance(errors[0], InvalidArgumentError)

    def test_out_of_range_start_raises(self, cursor: SheetCursor) -> None:
        with pytest.raises(BoundsError):
            cursor.read_many(10, 1)


class TestReadAll:
    """Tests for full reads."""

    def test_forward_visits_every_row_in_order(self, cursor: SheetCursor) -> None:
        indices: list[int] = []
        ends: list[int] = []
        cursor.on("end", ends.append)

        count = cursor.read_all(on_record=lambda row, index: indices.append(index))

        assert count == 10
        assert indices == list(range(10))
        assert ends == [10]

    def test_backwards_visits_rows_in_reverse(self, cursor: SheetCursor) -> None:
        rows: list[Row] = []

        cursor.read_all(backwards=True, on_record=lambda row, index: rows.append(row))

        assert [row[0] for row in rows] == list(range(9, -1, -1))

    def test_truthy_return_aborts_after_current_row(self, cursor: SheetCursor) -> None:
        indices: list[int] = []
        ends: list[int] = []
        cursor.on("end", ends.append)

        def on_record(row: Row, index: int) -> bool:
            indices.append(index)
            return index == 3

        count = cursor.read_all(on_record=on_record)

        assert count == 4
        assert indices == [0, 1, 2, 3]
        assert ends == [4]
        assert cursor.abort_requested

    def test_request_abort_from_callback(self, cursor: SheetCursor) -> None:
        indices: list[int] = []

        def on_record(row: Row, index: int) -> None:
            indices.append(index)
            if index == 6:
                cursor.request_abort()

        assert cursor.read_all(backwards=True, on_record=on_record) == 4
        assert indices == [9, 8, 7, 6]

    def test_uses_registered_record_handler(self, cursor: SheetCursor) -> None:
        indices: list[int] = []
        cursor.on("record", lambda row, index: indices.append(index))

        assert cursor.read_all() == 10
        assert len(indices) == 10

    def test_missing_record_handler_raises(self, cursor: SheetCursor) -> None:
        with pytest.raises(MissingHandlerError):
            cursor.read_all()

    def test_missing_record_handler_reported(
        self, cursor: SheetCursor, errors: list[FSRError]
    ) -> None:
        assert cursor.read_all() == 0
        assert isinstance(errors[0], MissingHandlerError)

    def test_empty_sheet_fires_start_and_end(self) -> None:
        cursor = SheetCursor(InMemoryWorkbook.from_rows({"Empty": []}), "Empty")
        log: list[Any] = []
        cursor.on("start", lambda: log.append("start"))
        cursor.on("end", lambda count: log.append(("end", count)))

        count = cursor.read_all(on_record=lambda row, index: log.append(index))

        assert cursor.range is None
        assert cursor.row_count == 0
        assert count == 0
        assert log == ["start", ("end", 0)]
        assert not cursor.move_next()

    def test_second_read_after_abort_starts_over(self, cursor: SheetCursor) -> None:
        cursor.read_all(on_record=lambda row, index: True)

        assert cursor.read_all(on_record=lambda row, index: None) == 10
        assert not cursor.abort_requested


class TestReadAllSheets:
    """Tests for multi-sheet reads."""

    def test_reads_every_sheet_in_order(self, orders_workbook: InMemoryWorkbook) -> None:
        cursor = SheetCursor(orders_workbook)
        sheets: list[tuple[str, int]] = []
        seen: list[str | None] = []

        total = cursor.read_all_sheets(
            on_sheet=lambda name, index: sheets.append((name, index)),
            on_record=lambda row, index: seen.append(cursor.sheet_name),
        )

        assert total == 9
        assert sheets == [("Orders", 0), ("Notes", 1)]
        assert seen == ["Orders"] * 6 + ["Notes"] * 3

    def test_truthy_on_sheet_skips_remaining_sheets(
        self, orders_workbook: InMemoryWorkbook
    ) -> None:
        cursor = SheetCursor(orders_workbook)

        total = cursor.read_all_sheets(
            on_sheet=lambda name, index: name == "Notes",
            on_record=lambda row, index: None,
        )

        assert total == 6

    def test_record_abort_ends_the_walk(self, orders_workbook: InMemoryWorkbook) -> None:
        cursor = SheetCursor(orders_workbook)
        sheets: list[str] = []

        total = cursor.read_all_sheets(
            on_sheet=lambda name, index: sheets.append(name),
            on_record=lambda row, index: index == 1,
        )

        assert total == 2
        assert sheets == ["Orders"]

    def test_backwards(self, orders_workbook: InMemoryWorkbook) -> None:
        cursor = SheetCursor(orders_workbook)
        firsts: list[Any] = []

        cursor.read_all_sheets(
            on_record=lambda row, index: firsts.append(row[0]), backwards=True
        )

        assert firsts[0] == 5
        assert firsts[-1] == "Note"


class TestDestroy:
    """Tests for the destroyed state."""

    def test_operations_after_destroy_raise(self, cursor: SheetCursor) -> None:
        cursor.destroy()

        assert cursor.is_destroyed
        with pytest.raises(DestroyedResourceError):
            cursor.move_next()
        with pytest.raises(DestroyedResourceError):
            cursor.load_sheet(0)
        with pytest.raises(DestroyedResourceError):
            cursor.reset()

    def test_operations_after_destroy_report_to_handler(
        self, cursor: SheetCursor, errors: list[FSRError]
    ) -> None:
        cursor.destroy()

        assert cursor.read_at(0) is None
        assert cursor.read_all(on_record=lambda row, index: None) == 0
        assert cursor.read_cell() is None
        assert all(isinstance(e, DestroyedResourceError) for e in errors)
        assert len(errors) == 3

    def test_destroy_is_idempotent(self, cursor: SheetCursor) -> None:
        cursor.destroy()
        cursor.destroy()
        assert cursor.workbook is None

    def test_context_manager_destroys(self, numbers_workbook: InMemoryWorkbook) -> None:
        with SheetCursor(numbers_workbook, 0) as cursor:
            assert cursor.read_next() == [0, 0]
        assert cursor.is_destroyed


class TestOpenpyxlBackedCursor:
    """Cursor over a real .xlsx file."""

    def test_reads_typed_values(self, orders_xlsx: Path) -> None:
        workbook = open_workbook(orders_xlsx)
        try:
            cursor = SheetCursor(workbook, "Orders")

            assert cursor.range == CellRange(0, 0, 5, 3)
            assert cursor.read_at(1) == [1, "Alice", 10.5, datetime(2024, 1, 15)]
            assert cursor.read_at(3) == [3, "Carol", None, datetime(2024, 3, 10)]
            assert cursor.read_at(-1) == [5, "Eve", 3, datetime(2024, 5, 20)]
        finally:
            workbook.close()
