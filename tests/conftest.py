from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook
from openpyxl.utils.datetime import CALENDAR_MAC_1904

from fast_sheet_reader.services.workbook_source import InMemoryWorkbook

MakeXlsx = Callable[..., Path]

ORDERS_ROWS: list[list[Any]] = [
    ["ID", "Name", "Amount", "Placed"],
    [1, "Alice", 10.5, datetime(2024, 1, 15)],
    [2, "Bob", 20, datetime(2024, 2, 1)],
    [3, "Carol", None, datetime(2024, 3, 10)],
    [4, "Dave", 7.25, datetime(2024, 4, 2)],
    [5, "Eve", 3, datetime(2024, 5, 20)],
]


@pytest.fixture
def orders_rows() -> list[list[Any]]:
    """Header row followed by five order rows."""
    return [list(row) for row in ORDERS_ROWS]


@pytest.fixture
def orders_workbook(orders_rows: list[list[Any]]) -> InMemoryWorkbook:
    """In-memory workbook with an Orders sheet and a small Notes sheet."""
    return InMemoryWorkbook.from_rows(
        {
            "Orders": orders_rows,
            "Notes": [["Note"], ["first"], ["second"]],
        }
    )


@pytest.fixture
def numbers_workbook() -> InMemoryWorkbook:
    """Headerless sheet of ten rows holding their own row number."""
    return InMemoryWorkbook.from_rows({"Numbers": [[i, i * 10] for i in range(10)]})


@pytest.fixture
def make_xlsx(tmp_path: Path) -> MakeXlsx:
    """Factory writing ``{sheet name: rows}`` to an .xlsx file in tmp_path."""

    def _make(
        sheets: Mapping[str, Sequence[Sequence[Any]]],
        name: str = "book.xlsx",
        epoch1904: bool = False,
    ) -> Path:
        wb = Workbook()
        first = True
        for sheet_name, rows in sheets.items():
            if first:
                ws = wb.active
                ws.title = sheet_name
                first = False
            else:
                ws = wb.create_sheet(sheet_name)
            for row in rows:
                ws.append(list(row))
        if epoch1904:
            wb.epoch = CALENDAR_MAC_1904
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


@pytest.fixture
def orders_xlsx(make_xlsx: MakeXlsx, orders_rows: list[list[Any]]) -> Path:
    """Orders and Notes sheets saved as a real workbook."""
    return make_xlsx(
        {
            "Orders": orders_rows,
            "Notes": [["Note"], ["first"], ["second"]],
        },
        name="orders.xlsx",
    )
