"""Centralized exception classes for fast sheet reader.

This module provides a hierarchy of custom exceptions with error codes,
HTTP status code mapping, and structured error details for consistent
error handling throughout the library, the CLI and the HTTP API.

Exception Hierarchy:
    FSRError (base)
    ├── FileError
    │   ├── SheetFileNotFoundError
    │   ├── FileTooLargeError
    │   ├── UnsupportedFormatError
    │   ├── FileReadError
    │   └── SinkError
    ├── SchemaError
    │   ├── SchemaDefinitionError
    │   ├── SchemaMappingError
    │   └── SchemaParseError
    ├── CursorError
    │   ├── BoundsError
    │   ├── DestroyedResourceError
    │   ├── MissingHandlerError
    │   ├── SheetNotFoundError
    │   ├── SheetNotLoadedError
    │   ├── InvalidArgumentError
    │   └── UnknownEventError
    ├── ConversionError
    └── ValidationError

Error Codes:
    All errors have a unique error code (e.g., "E3001") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used in the library.

    Error codes are grouped by category:
    - E1xxx: File/workbook/sink errors
    - E2xxx: Schema errors
    - E3xxx: Cursor errors
    - E4xxx: Conversion errors
    - E9xxx: Internal/unexpected errors
    """

    # File errors (E1xxx)
    FILE_NOT_FOUND = "E1001"
    FILE_TOO_LARGE = "E1002"
    UNSUPPORTED_FORMAT = "E1003"
    FILE_READ_ERROR = "E1004"
    FILE_WRITE_ERROR = "E1005"

    # Schema errors (E2xxx)
    INVALID_SCHEMA = "E2001"
    SCHEMA_MAPPING_FAILED = "E2002"
    SCHEMA_PARSE_ERROR = "E2003"

    # Cursor errors (E3xxx)
    ROW_OUT_OF_BOUNDS = "E3001"
    CURSOR_DESTROYED = "E3002"
    MISSING_HANDLER = "E3003"
    SHEET_NOT_FOUND = "E3004"
    SHEET_NOT_LOADED = "E3005"
    INVALID_ARGUMENT = "E3006"
    UNKNOWN_EVENT = "E3007"

    # Conversion errors (E4xxx)
    CONVERSION_FAILED = "E4001"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"
    INVALID_INPUT = "E9003"
    UNEXPECTED_ERROR = "E9999"


class HTTPStatusMixin:
    """Mixin that provides HTTP status code for exceptions.

    This mixin allows exceptions to declare their appropriate HTTP status code
    for API responses. Subclasses should set the `http_status` class attribute.
    """

    http_status: int = 500

    def get_http_status(self) -> int:
        """Get the HTTP status code for this exception.

        Returns:
            HTTP status code appropriate for this error.
        """
        return self.http_status


class FSRError(Exception, HTTPStatusMixin):
    """Base exception for all fast sheet reader errors.

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
        http_status: HTTP status code for API responses (default 500).
    """

    http_status: int = 500

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for API responses.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# File Errors (E1xxx)
# =============================================================================


class FileError(FSRError):
    """Base class for workbook file and output sink errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.FILE_READ_ERROR,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with file path information.

        Args:
            message: Error message.
            error_code: Error code.
            file_path: Path to the problematic file.
            details: Additional details.
        """
        details = details or {}
        if file_path:
            details["file_path"] = file_path
        super().__init__(message, error_code, details)
        self.file_path = file_path


class SheetFileNotFoundError(FileError):
    """Raised when the workbook file does not exist.

    Note: Not named FileNotFoundError to avoid shadowing the built-in.
    """

    http_status: int = 404

    def __init__(
        self,
        file_path: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        message = message or f"File not found: {file_path}"
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_NOT_FOUND,
            file_path=file_path,
            details=details,
        )


class FileTooLargeError(FileError):
    """Raised when a workbook exceeds the configured size limit."""

    http_status: int = 413

    def __init__(
        self,
        file_size: int,
        max_size: int,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual file size in bytes.
            max_size: Maximum allowed size in bytes.
            file_path: Optional file path.
            details: Additional details.
        """
        details = details or {}
        details["file_size_bytes"] = file_size
        details["max_size_bytes"] = max_size
        message = (
            f"File size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_TOO_LARGE,
            file_path=file_path,
            details=details,
        )
        self.file_size = file_size
        self.max_size = max_size


class UnsupportedFormatError(FileError):
    """Raised when a workbook or output format is not supported."""

    http_status: int = 415

    def __init__(
        self,
        message: str,
        format_name: str | None = None,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if format_name:
            details["format"] = format_name
        super().__init__(
            message=message,
            error_code=ErrorCode.UNSUPPORTED_FORMAT,
            file_path=file_path,
            details=details,
        )
        self.format_name = format_name


class FileReadError(FileError):
    """Raised when the workbook-loading library fails to open a file."""

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_READ_ERROR,
            file_path=file_path,
            details=details,
        )


class SinkError(FileError):
    """Raised when a row sink cannot be opened or written to."""

    http_status: int = 500

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.FILE_WRITE_ERROR,
            file_path=file_path,
            details=details,
        )


# =============================================================================
# Schema Errors (E2xxx)
# =============================================================================


class SchemaError(FSRError):
    """Base class for column-mapping schema errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INVALID_SCHEMA,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation errors.

        Args:
            message: Main error message.
            error_code: Error code.
            errors: List of specific validation error messages.
            details: Additional details.
        """
        details = details or {}
        if errors:
            details["validation_errors"] = errors
        super().__init__(message, error_code, details)
        self.errors = errors or []


class SchemaDefinitionError(SchemaError):
    """Raised when a schema definition is malformed."""

    def __init__(
        self,
        message: str,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_SCHEMA,
            errors=errors,
            details=details,
        )


class SchemaMappingError(SchemaError):
    """Raised when a header column has no entry in the schema."""

    def __init__(
        self,
        column: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["column"] = column
        message = message or f'Invalid schema! No mapping for column "{column}".'
        super().__init__(
            message=message,
            error_code=ErrorCode.SCHEMA_MAPPING_FAILED,
            details=details,
        )
        self.column = column


class SchemaParseError(SchemaError):
    """Raised when a schema document cannot be parsed (invalid JSON, etc.)."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            error_code=ErrorCode.SCHEMA_PARSE_ERROR,
            details=details,
        )


# =============================================================================
# Cursor Errors (E3xxx)
# =============================================================================


class CursorError(FSRError):
    """Base class for sheet cursor errors."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        sheet_name: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the sheet the cursor was on.

        Args:
            message: Error message.
            error_code: Error code.
            sheet_name: Name of the loaded sheet, if any.
            details: Additional details.
        """
        details = details or {}
        if sheet_name:
            details["sheet_name"] = sheet_name
        super().__init__(message, error_code, details)
        self.sheet_name = sheet_name


class BoundsError(CursorError):
    """Raised when a row or column index falls outside the used range."""

    def __init__(
        self,
        index: int,
        lower: int,
        upper: int,
        axis: str = "row",
        sheet_name: str | None = None,
    ) -> None:
        if upper < lower:
            message = f"The sheet has no {axis}s; cannot read {axis} {index}."
        else:
            message = (
                f"The {axis} index must be between {lower} and {upper} "
                f"inclusive, got {index}."
            )
        super().__init__(
            message=message,
            error_code=ErrorCode.ROW_OUT_OF_BOUNDS,
            sheet_name=sheet_name,
            details={"index": index, "lower": lower, "upper": upper, "axis": axis},
        )
        self.index = index
        self.lower = lower
        self.upper = upper
        self.axis = axis


class DestroyedResourceError(CursorError):
    """Raised on any cursor operation after destroy()."""

    http_status: int = 410

    def __init__(self, message: str = "The sheet cursor has been destroyed.") -> None:
        super().__init__(message=message, error_code=ErrorCode.CURSOR_DESTROYED)


class MissingHandlerError(CursorError):
    """Raised when a full read has no record callback to deliver rows to."""

    def __init__(
        self,
        event: str = "record",
        message: str | None = None,
        sheet_name: str | None = None,
    ) -> None:
        message = (
            message
            or f"A callback function for the '{event}' event must be specified."
        )
        super().__init__(
            message=message,
            error_code=ErrorCode.MISSING_HANDLER,
            sheet_name=sheet_name,
            details={"event": event},
        )
        self.event = event


class SheetNotFoundError(CursorError):
    """Raised when a sheet name or index does not exist in the workbook."""

    http_status: int = 404

    def __init__(
        self,
        sheet: str | int,
        available: list[str] | None = None,
    ) -> None:
        details: dict[str, Any] = {"sheet": sheet}
        if available is not None:
            details["available_sheets"] = available
        super().__init__(
            message=f"Sheet '{sheet}' not found in workbook",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            details=details,
        )
        self.sheet = sheet


class SheetNotLoadedError(CursorError):
    """Raised when rows are requested before any sheet was loaded."""

    def __init__(self, message: str = "No sheet has been loaded.") -> None:
        super().__init__(message=message, error_code=ErrorCode.SHEET_NOT_LOADED)


class InvalidArgumentError(CursorError):
    """Raised when a cursor operation receives an invalid argument."""

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        sheet_name: str | None = None,
    ) -> None:
        details = {"argument": argument} if argument else None
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_ARGUMENT,
            sheet_name=sheet_name,
            details=details,
        )
        self.argument = argument


class UnknownEventError(CursorError):
    """Raised when registering a handler for an event that does not exist."""

    def __init__(self, event: str, supported: list[str] | None = None) -> None:
        details: dict[str, Any] = {"event": event}
        if supported:
            details["supported_events"] = supported
        super().__init__(
            message=f"Unknown event: {event}",
            error_code=ErrorCode.UNKNOWN_EVENT,
            details=details,
        )
        self.event = event


# =============================================================================
# Conversion Errors (E4xxx)
# =============================================================================


class ConversionError(FSRError):
    """Raised when a cell value cannot be converted to the requested type."""

    http_status: int = 422

    def __init__(
        self,
        message: str,
        value: Any = None,
        target: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        details["value"] = repr(value)
        if target:
            details["target"] = target
        super().__init__(
            message=message,
            error_code=ErrorCode.CONVERSION_FAILED,
            details=details,
        )
        self.value = value
        self.target = target


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(FSRError):
    """General validation error for CLI and API input."""

    http_status: int = 400

    def __init__(
        self,
        message: str,
        field: str | None = None,
        errors: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with validation details.

        Args:
            message: Main error message.
            field: Field that failed validation.
            errors: List of validation errors.
            details: Additional details.
        """
        details = details or {}
        if field:
            details["field"] = field
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            message=message,
            error_code=ErrorCode.INVALID_INPUT,
            details=details,
        )
