"""Row sinks that serialize records as they are produced.

Only JSON is supported: the sink writes an opening bracket, one serialized
record per row separated by commas, and the closing bracket on finalize, so
the output is a valid JSON array even when the read stops early.
"""

from __future__ import annotations

import json
from datetime import date, datetime
from pathlib import Path
from typing import IO, Any, Protocol, runtime_checkable

from fast_sheet_reader.config import SUPPORTED_OUTPUT_FORMATS, settings
from fast_sheet_reader.sheet_document import Record
from fast_sheet_reader.utils.exceptions import SinkError, UnsupportedFormatError
from fast_sheet_reader.utils.logging import get_logger

logger = get_logger(__name__)

__all__ = ["JsonArraySink", "RowSink", "create_sink", "json_default"]


@runtime_checkable
class RowSink(Protocol):
    """Destination for records streamed out of a read."""

    def write_header_marker(self) -> None: ...

    def write_record(self, record: Record) -> None: ...

    def finalize(self) -> None: ...


def json_default(value: Any) -> Any:
    """Serialize values json cannot handle natively."""
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class JsonArraySink:
    """Streams records into a JSON array.

    A path is opened for writing and closed on ``finalize()``. A stream
    supplied by the caller is only flushed; closing it stays with the caller.
    """

    def __init__(
        self,
        output: str | Path | IO[str],
        *,
        ensure_ascii: bool | None = None,
    ) -> None:
        self._path: str | None = None
        self._stream: IO[str] | None = None
        self._owns_stream = False
        if isinstance(output, (str, Path)):
            self._path = str(output)
        else:
            self._stream = output
        self._ensure_ascii = (
            settings.json_ensure_ascii if ensure_ascii is None else ensure_ascii
        )
        self._opened = False
        self._finalized = False
        self.records_written = 0

    @property
    def finalized(self) -> bool:
        return self._finalized

    def write_header_marker(self) -> None:
        """Open the output and write the opening bracket."""
        if self._opened:
            return
        if self._path is not None:
            try:
                self._stream = open(self._path, "w", encoding="utf-8")  # noqa: SIM115
            except OSError as e:
                raise SinkError(
                    f"Cannot open output: {e}", file_path=self._path
                ) from e
            self._owns_stream = True
        self._opened = True
        self._write("[")

    def write_record(self, record: Record) -> None:
        if not self._opened:
            self.write_header_marker()
        if self._finalized:
            raise SinkError("Cannot write to a finalized sink", file_path=self._path)
        try:
            text = json.dumps(
                record, default=json_default, ensure_ascii=self._ensure_ascii
            )
        except (TypeError, ValueError) as e:
            raise SinkError(
                f"Record is not JSON serializable: {e}", file_path=self._path
            ) from e
        self._write(text if self.records_written == 0 else "," + text)
        self.records_written += 1

    def finalize(self) -> None:
        """Write the closing bracket and release the output. Idempotent."""
        if self._finalized:
            return
        if not self._opened:
            self.write_header_marker()
        try:
            self._write("]")
        finally:
            self._finalized = True
            self._release()
        logger.debug(
            "Sink finalized",
            output=self._path or "<stream>",
            records=self.records_written,
        )

    def _write(self, text: str) -> None:
        assert self._stream is not None
        try:
            self._stream.write(text)
        except (OSError, ValueError) as e:
            raise SinkError(f"Failed to write output: {e}", file_path=self._path) from e

    def _release(self) -> None:
        if self._stream is None:
            return
        try:
            if self._owns_stream:
                self._stream.close()
            else:
                self._stream.flush()
        except (OSError, ValueError) as e:
            raise SinkError(f"Failed to flush output: {e}", file_path=self._path) from e


def create_sink(
    output: str | Path | IO[str],
    format: str | None = None,
) -> RowSink:
    """Create a row sink for a path or a writable text stream.

    Raises:
        UnsupportedFormatError: If the format is not supported.
    """
    format_name = (format or settings.output_format).lower()
    if format_name not in SUPPORTED_OUTPUT_FORMATS:
        raise UnsupportedFormatError(
            f"Unsupported output format: {format_name}",
            format_name=format_name,
            details={"supported_formats": sorted(SUPPORTED_OUTPUT_FORMATS)},
        )
    if not isinstance(output, (str, Path)) and not hasattr(output, "write"):
        raise SinkError(f"Output of type {type(output).__name__} is not writable")
    return JsonArraySink(output)
