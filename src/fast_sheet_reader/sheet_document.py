"""Dataclasses and type aliases describing sheets, cursors and read results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from fast_sheet_reader.utils.exceptions import FSRError

CellValue = int | float | str | bool | datetime | None
"""A single cell value; ``None`` means no cell is stored at that position."""

Row = list[CellValue]
Record = dict[str, Any]


@dataclass(frozen=True)
class CellRange:
    """Inclusive, 0-based bounds of a sheet's used range."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int

    def __post_init__(self) -> None:
        if self.start_row < 0 or self.start_col < 0:
            raise ValueError(f"Range bounds must be non-negative: {self}")
        if self.start_row > self.end_row or self.start_col > self.end_col:
            raise ValueError(f"Range start must not exceed its end: {self}")

    @property
    def row_count(self) -> int:
        return self.end_row - self.start_row + 1

    @property
    def col_count(self) -> int:
        return self.end_col - self.start_col + 1

    def contains(self, row: int, col: int) -> bool:
        """Whether (row, col) lies inside the range."""
        return (
            self.start_row <= row <= self.end_row
            and self.start_col <= col <= self.end_col
        )

    def to_dict(self) -> dict[str, int]:
        return {
            "start_row": self.start_row,
            "start_col": self.start_col,
            "end_row": self.end_row,
            "end_col": self.end_col,
        }


@dataclass(frozen=True)
class CursorState:
    """Snapshot of a sheet cursor's position and lifecycle flags."""

    row_index: int
    col_index: int
    loaded: bool
    started: bool
    destroyed: bool
    abort_requested: bool


@dataclass
class SheetSummary:
    """Name, position and extent of one worksheet."""

    name: str
    index: int
    range: CellRange | None

    @property
    def row_count(self) -> int:
        return self.range.row_count if self.range else 0

    @property
    def col_count(self) -> int:
        return self.range.col_count if self.range else 0


@dataclass
class ReadResult:
    """Outcome of a full read through the sheet reader."""

    records: list[Record] | None = None
    """Accumulated records, or None when they were streamed elsewhere."""

    rows_processed: int = 0
    """Rows materialized, header rows included when headers are present."""

    sheets: list[str] = field(default_factory=list)
    """Names of the sheets that were read, in order."""

    aborted: bool = False
    """Whether a callback or an error stopped the read early."""

    error: FSRError | None = None
    """The error that ended the read, if any."""

    @property
    def success(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        """Re-raise the error that ended the read, if there was one."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "rows_processed": self.rows_processed,
            "sheets": self.sheets,
            "aborted": self.aborted,
        }
        if self.records is not None:
            result["record_count"] = len(self.records)
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result
