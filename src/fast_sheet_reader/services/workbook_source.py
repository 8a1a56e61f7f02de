"""Workbook sources: openpyxl-backed workbooks and in-memory grids.

The sheet cursor never parses files itself. It talks to a ``WorkbookSource``
that lists sheet names and hands out ``SparseGrid`` accessors, each exposing
a declared used range and cell lookup by 0-based (row, col).
"""

from __future__ import annotations

import zipfile
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import IO, Protocol, runtime_checkable

from openpyxl import load_workbook
from openpyxl.utils.datetime import CALENDAR_MAC_1904
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from fast_sheet_reader.sheet_document import CellRange, CellValue, SheetSummary
from fast_sheet_reader.utils.exceptions import (
    FileReadError,
    FileTooLargeError,
    SheetFileNotFoundError,
    SheetNotFoundError,
    UnsupportedFormatError,
)
from fast_sheet_reader.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = [
    "SUPPORTED_EXTENSIONS",
    "InMemoryGrid",
    "InMemoryWorkbook",
    "OpenpyxlGrid",
    "OpenpyxlWorkbook",
    "SparseGrid",
    "WorkbookSource",
    "open_workbook",
    "parse_sheet_selector",
    "summarize_sheets",
]

# Extensions openpyxl can load
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".xlsx", ".xlsm", ".xltx", ".xltm"})


@runtime_checkable
class SparseGrid(Protocol):
    """Read access to one sheet's cells."""

    @property
    def name(self) -> str: ...

    def used_range(self) -> CellRange | None: ...

    def get(self, row: int, col: int) -> CellValue: ...


@runtime_checkable
class WorkbookSource(Protocol):
    """A workbook the cursor can load sheets from."""

    @property
    def sheet_names(self) -> list[str]: ...

    @property
    def epoch1904(self) -> bool: ...

    def sheet(self, name_or_index: str | int) -> SparseGrid: ...

    def close(self) -> None: ...


def _resolve_sheet_name(names: list[str], name_or_index: str | int) -> str:
    """Map a sheet name or 0-based index to a sheet name."""
    if isinstance(name_or_index, bool):
        raise SheetNotFoundError(name_or_index, available=names)
    if isinstance(name_or_index, int):
        if 0 <= name_or_index < len(names):
            return names[name_or_index]
        raise SheetNotFoundError(name_or_index, available=names)
    if name_or_index in names:
        return name_or_index
    raise SheetNotFoundError(name_or_index, available=names)


def parse_sheet_selector(value: str | None) -> str | int | None:
    """Interpret user input as a sheet name, or as an index when all digits."""
    if value is None or value == "":
        return None
    if value.isdigit():
        return int(value)
    return value


def summarize_sheets(workbook: WorkbookSource) -> list[SheetSummary]:
    """Describe every sheet of a workbook with its used range."""
    return [
        SheetSummary(name=name, index=index, range=workbook.sheet(name).used_range())
        for index, name in enumerate(workbook.sheet_names)
    ]


# ---------------------------------------------------------------------- #
# openpyxl
# ---------------------------------------------------------------------- #


class OpenpyxlGrid:
    """SparseGrid over an openpyxl worksheet."""

    def __init__(self, worksheet: Worksheet) -> None:
        self._worksheet = worksheet
        self._range = self._compute_range(worksheet)

    @property
    def name(self) -> str:
        return str(self._worksheet.title)

    @property
    def worksheet(self) -> Worksheet:
        return self._worksheet

    def used_range(self) -> CellRange | None:
        return self._range

    def get(self, row: int, col: int) -> CellValue:
        # worksheet.cell() would store an empty cell on every miss
        if self._range is None or not self._range.contains(row, col):
            return None
        cell = self._worksheet._cells.get((row + 1, col + 1))
        if cell is None:
            return None
        value: CellValue = cell.value
        return value

    @staticmethod
    def _compute_range(worksheet: Worksheet) -> CellRange | None:
        """Convert openpyxl's 1-based dimensions to a 0-based range."""
        if not worksheet._cells:
            return None
        min_row, min_col = worksheet.min_row, worksheet.min_column
        max_row, max_col = worksheet.max_row, worksheet.max_column
        return CellRange(
            start_row=min_row - 1,
            start_col=min_col - 1,
            end_row=max_row - 1,
            end_col=max_col - 1,
        )


class OpenpyxlWorkbook:
    """WorkbookSource backed by an openpyxl Workbook.

    Only worksheets are exposed; chartsheets have no cells.
    """

    def __init__(self, workbook: Workbook, source_name: str | None = None) -> None:
        self._workbook = workbook
        self._grids: dict[str, OpenpyxlGrid] = {}
        self.source_name = source_name

    @property
    def workbook(self) -> Workbook:
        return self._workbook

    @property
    def sheet_names(self) -> list[str]:
        return [str(ws.title) for ws in self._workbook.worksheets]

    @property
    def epoch1904(self) -> bool:
        return bool(self._workbook.epoch == CALENDAR_MAC_1904)

    def sheet(self, name_or_index: str | int) -> OpenpyxlGrid:
        name = _resolve_sheet_name(self.sheet_names, name_or_index)
        grid = self._grids.get(name)
        if grid is None:
            grid = OpenpyxlGrid(self._workbook[name])
            self._grids[name] = grid
        return grid

    def close(self) -> None:
        self._grids.clear()
        self._workbook.close()


def _check_path(path: Path, max_size_bytes: int | None) -> None:
    if not path.exists() or not path.is_file():
        raise SheetFileNotFoundError(str(path))

    if path.suffix.lower() not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormatError(
            f"Unsupported workbook format: {path.suffix or '(no extension)'}",
            format_name=path.suffix.lower() or None,
            file_path=str(path),
            details={"supported_extensions": sorted(SUPPORTED_EXTENSIONS)},
        )

    file_size = path.stat().st_size
    if max_size_bytes is not None and file_size > max_size_bytes:
        raise FileTooLargeError(
            file_size=file_size, max_size=max_size_bytes, file_path=str(path)
        )


def open_workbook(
    source: str | Path | IO[bytes],
    *,
    max_size_bytes: int | None = None,
) -> OpenpyxlWorkbook:
    """Open an .xlsx workbook from a path or a binary stream.

    Cells are loaded with cached formula results (``data_only=True``);
    date-formatted cells come back as datetimes.

    Args:
        source: Path to the workbook, or a seekable binary stream.
        max_size_bytes: Optional size limit for path sources.

    Returns:
        The opened workbook.

    Raises:
        SheetFileNotFoundError: If the path does not exist.
        FileTooLargeError: If the file exceeds max_size_bytes.
        UnsupportedFormatError: If the source is not an xlsx container.
        FileReadError: If openpyxl cannot load the workbook.
    """
    source_name: str
    if isinstance(source, (str, Path)):
        path = Path(source)
        _check_path(path, max_size_bytes)
        source_name = str(path)
    else:
        source_name = getattr(source, "name", None) or "<stream>"

    if not zipfile.is_zipfile(source):
        raise UnsupportedFormatError(
            "Input is not an xlsx workbook (not a zip container)",
            format_name="unknown",
            file_path=source_name,
        )
    if not isinstance(source, (str, Path)):
        source.seek(0)

    try:
        workbook = load_workbook(source, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
        raise FileReadError(
            f"Failed to load workbook: {e}",
            file_path=source_name,
            details={"error_type": type(e).__name__},
        ) from e

    logger.debug(
        "Workbook opened",
        source=source_name,
        sheets=len(workbook.worksheets),
    )
    return OpenpyxlWorkbook(workbook, source_name=source_name)


# ---------------------------------------------------------------------- #
# In-memory
# ---------------------------------------------------------------------- #


class InMemoryGrid:
    """SparseGrid over a dictionary of (row, col) -> value.

    ``None`` values are never stored, so they read back as absent cells.
    """

    def __init__(
        self,
        name: str,
        cells: Mapping[tuple[int, int], CellValue],
        cell_range: CellRange | None = None,
    ) -> None:
        self._name = name
        self._cells = {pos: value for pos, value in cells.items() if value is not None}
        if cell_range is None and self._cells:
            rows = [row for row, _ in self._cells]
            cols = [col for _, col in self._cells]
            cell_range = CellRange(min(rows), min(cols), max(rows), max(cols))
        self._range = cell_range

    @classmethod
    def from_rows(
        cls,
        name: str,
        rows: Sequence[Sequence[CellValue]],
        start_row: int = 0,
        start_col: int = 0,
    ) -> InMemoryGrid:
        """Build a grid whose range spans every given row and column.

        Short rows are padded with absent cells up to the widest row.
        """
        cells = {
            (start_row + r, start_col + c): value
            for r, row in enumerate(rows)
            for c, value in enumerate(row)
        }
        width = max((len(row) for row in rows), default=0)
        cell_range = None
        if rows and width:
            cell_range = CellRange(
                start_row,
                start_col,
                start_row + len(rows) - 1,
                start_col + width - 1,
            )
        return cls(name, cells, cell_range)

    @property
    def name(self) -> str:
        return self._name

    def used_range(self) -> CellRange | None:
        return self._range

    def get(self, row: int, col: int) -> CellValue:
        return self._cells.get((row, col))


class InMemoryWorkbook:
    """WorkbookSource over grids held in memory."""

    def __init__(self, grids: Iterable[InMemoryGrid], epoch1904: bool = False) -> None:
        self._grids = {grid.name: grid for grid in grids}
        self._epoch1904 = epoch1904

    @classmethod
    def from_rows(
        cls,
        sheets: Mapping[str, Sequence[Sequence[CellValue]]],
        epoch1904: bool = False,
    ) -> InMemoryWorkbook:
        """Build a workbook from ``{sheet name: rows}``, keeping sheet order."""
        return cls(
            (InMemoryGrid.from_rows(name, rows) for name, rows in sheets.items()),
            epoch1904=epoch1904,
        )

    @property
    def sheet_names(self) -> list[str]:
        return list(self._grids)

    @property
    def epoch1904(self) -> bool:
        return self._epoch1904

    def sheet(self, name_or_index: str | int) -> InMemoryGrid:
        return self._grids[_resolve_sheet_name(self.sheet_names, name_or_index)]

    def close(self) -> None:
        """Nothing to release."""
