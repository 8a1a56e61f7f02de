"""Services for fast sheet reader."""

from fast_sheet_reader.services.date_converter import parse_date, try_convert_date
from fast_sheet_reader.services.events import EventRegistry, SheetEvent
from fast_sheet_reader.services.row_materializer import RowMaterializer
from fast_sheet_reader.services.schema_mapping import (
    CastKind,
    Schema,
    SchemaEntry,
    parse_schema,
)
from fast_sheet_reader.services.sheet_cursor import SheetCursor
from fast_sheet_reader.services.workbook_source import (
    InMemoryGrid,
    InMemoryWorkbook,
    OpenpyxlWorkbook,
    SparseGrid,
    WorkbookSource,
    open_workbook,
)

__all__ = [
    "CastKind",
    "EventRegistry",
    "InMemoryGrid",
    "InMemoryWorkbook",
    "OpenpyxlWorkbook",
    "RowMaterializer",
    "Schema",
    "SchemaEntry",
    "SheetCursor",
    "SheetEvent",
    "SparseGrid",
    "WorkbookSource",
    "open_workbook",
    "parse_date",
    "parse_schema",
    "try_convert_date",
]
