"""Turns raw sheet rows into a header and keyed records."""

from __future__ import annotations

from fast_sheet_reader.services.schema_mapping import Schema
from fast_sheet_reader.sheet_document import Record, Row
from fast_sheet_reader.utils.exceptions import SchemaMappingError


class RowMaterializer:
    """Resolves the header of each sheet and maps rows to records.

    Usage per sheet: call ``begin_sheet(width)``. When it returns None the
    sheet has a header row, which must be passed to ``read_header`` before
    any ``materialize`` call.
    """

    def __init__(
        self,
        *,
        has_header: bool = True,
        header_prefix: str = "header_",
        lower_case_headers: bool = False,
        schema: Schema | None = None,
        epoch1904: bool = False,
    ) -> None:
        self.has_header = has_header
        self.header_prefix = header_prefix
        self.lower_case_headers = lower_case_headers
        self.schema = schema
        self.epoch1904 = epoch1904
        self.header: list[str] | None = None
        self.current_row: Record | None = None
        self.rows_processed = 0
        self._mapping_error_raised = False

    @property
    def needs_header(self) -> bool:
        """Whether the next row handed in must be the header row."""
        return self.header is None

    def begin_sheet(self, width: int) -> list[str] | None:
        """Prepare for a freshly loaded sheet of ``width`` columns.

        Returns:
            The synthesized header when the sheet has no header row,
            otherwise None.
        """
        self.header = None
        if self.has_header:
            return None
        if self.schema is not None:
            self.header = self.schema.columns
        else:
            self.header = [self._ordinal_name(col) for col in range(width)]
            if self.lower_case_headers:
                self.header = [name.lower() for name in self.header]
        return self.header

    def read_header(self, row: Row) -> list[str]:
        """Consume the header row of the current sheet."""
        header: list[str] = []
        for col, value in enumerate(row):
            name = self._ordinal_name(col) if value is None else str(value).strip()
            if self.lower_case_headers and self.schema is None:
                name = name.lower()
            header.append(name)
        self.header = header
        self.rows_processed += 1
        return header

    def materialize(self, row: Row) -> Record:
        """Map a data row to a record using the current header.

        Raises:
            SchemaMappingError: The first time a header column has no
                schema entry during this read. Later unmapped columns are
                skipped.
        """
        if self.header is None:
            raise RuntimeError("materialize() called before the header was resolved")

        if self.schema is None:
            record: Record = {
                name: row[col] if col < len(row) else None
                for col, name in enumerate(self.header)
            }
        else:
            record = self._map_with_schema(self.schema, self.header, row)

        self.rows_processed += 1
        self.current_row = record
        return record

    def _map_with_schema(self, schema: Schema, header: list[str], row: Row) -> Record:
        record: Record = {}
        for col, name in enumerate(header):
            entry = schema.get(name)
            if entry is None:
                if not self._mapping_error_raised:
                    self._mapping_error_raised = True
                    raise SchemaMappingError(name)
                continue
            value = row[col] if col < len(row) else None
            if value is None:
                value = ""
            record[entry.target_property] = entry.apply(value, self.epoch1904)
        return record

    def _ordinal_name(self, col: int) -> str:
        return f"{self.header_prefix}{col + 1}"
