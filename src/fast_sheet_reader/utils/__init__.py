"""Utilities package for fast sheet reader.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from fast_sheet_reader.utils.exceptions import (
    BoundsError,
    ConversionError,
    CursorError,
    DestroyedResourceError,
    ErrorCode,
    FileError,
    FSRError,
    HTTPStatusMixin,
    MissingHandlerError,
    SchemaError,
    SchemaMappingError,
    UnsupportedFormatError,
    ValidationError,
)
from fast_sheet_reader.utils.logging import (
    LogContext,
    StructuredLogger,
    get_logger,
    get_request_id,
    set_request_id,
)

__all__ = [
    # Exceptions
    "BoundsError",
    "ConversionError",
    "CursorError",
    "DestroyedResourceError",
    "ErrorCode",
    "FSRError",
    "FileError",
    "HTTPStatusMixin",
    "MissingHandlerError",
    "SchemaError",
    "SchemaMappingError",
    "UnsupportedFormatError",
    "ValidationError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "get_logger",
    "get_request_id",
    "set_request_id",
]
