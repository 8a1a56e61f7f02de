"""Fast Sheet Reader - row-at-a-time spreadsheet reading."""

from fast_sheet_reader.services.schema_mapping import CastKind, Schema, SchemaEntry
from fast_sheet_reader.services.sheet_cursor import SheetCursor
from fast_sheet_reader.services.sheet_reader import (
    ReadOptions,
    SheetReader,
    create_cursor,
    create_reader,
    read,
)
from fast_sheet_reader.services.workbook_source import InMemoryWorkbook, open_workbook
from fast_sheet_reader.sheet_document import CellRange, ReadResult

__version__ = "0.1.0"

__all__ = [
    "CastKind",
    "CellRange",
    "InMemoryWorkbook",
    "ReadOptions",
    "ReadResult",
    "Schema",
    "SchemaEntry",
    "SheetCursor",
    "SheetReader",
    "__version__",
    "create_cursor",
    "create_reader",
    "main",
    "open_workbook",
    "read",
]


def main() -> None:
    """Run the FastAPI server using uvicorn."""
    import uvicorn

    from fast_sheet_reader.config import settings

    uvicorn.run(
        "fast_sheet_reader.api:app",
        host=settings.server_host,
        port=settings.server_port,
        reload=settings.debug,
    )
