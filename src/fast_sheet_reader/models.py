"""Pydantic models for API requests and responses."""

from typing import Any

from pydantic import BaseModel, Field

from fast_sheet_reader.sheet_document import SheetSummary
from fast_sheet_reader.utils.exceptions import ErrorCode


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str


class RangeInfo(BaseModel):
    """Used range of a sheet, 0-based and inclusive."""

    start_row: int
    start_col: int
    end_row: int
    end_col: int


class SheetInfo(BaseModel):
    """Name, position and extent of one sheet."""

    name: str = Field(..., description="Sheet name")
    index: int = Field(..., description="0-based position in the workbook")
    range: RangeInfo | None = Field(
        default=None, description="Used range, or null for an empty sheet"
    )
    row_count: int = Field(..., description="Rows in the used range")
    col_count: int = Field(..., description="Columns in the used range")

    @classmethod
    def from_summary(cls, summary: SheetSummary) -> "SheetInfo":
        return cls(
            name=summary.name,
            index=summary.index,
            range=RangeInfo(**summary.range.to_dict()) if summary.range else None,
            row_count=summary.row_count,
            col_count=summary.col_count,
        )


class SheetsResponse(BaseModel):
    """Response model for the sheet listing endpoint."""

    filename: str = Field(..., description="Original filename of the workbook")
    sheets: list[SheetInfo] = Field(..., description="Sheets in workbook order")


class ReadResponse(BaseModel):
    """Response model for the read endpoint."""

    filename: str = Field(..., description="Original filename of the workbook")
    sheets: list[str] = Field(..., description="Sheets that were read")
    rows_processed: int = Field(
        ..., description="Rows materialized, header rows included"
    )
    record_count: int = Field(..., description="Number of records returned")
    aborted: bool = Field(default=False, description="Whether the read stopped early")
    records: list[dict[str, Any]] = Field(..., description="Records in read order")


class ErrorDetail(BaseModel):
    """Error detail model for API error responses.

    This model provides structured error responses with:
    - Human-readable error message
    - Machine-readable error code
    - Optional additional details for debugging
    - Optional request ID for correlation
    """

    detail: str = Field(..., description="Human-readable error message")
    error_code: str | None = Field(
        default=None,
        description="Machine-readable error code (e.g., 'E1001')",
    )
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )

    @classmethod
    def from_error_code(
        cls,
        error_code: ErrorCode,
        detail: str,
        details: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> "ErrorDetail":
        """Create an ErrorDetail from an ErrorCode enum value."""
        return cls(
            detail=detail,
            error_code=error_code.value,
            details=details,
            request_id=request_id,
        )
