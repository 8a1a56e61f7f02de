"""Logging helpers shared by the reader, the CLI and the API.

Every message is written as ``"<text> | key=value, ..."``. Handlers installed
through ``configure_logging`` prefix each line with the current request id and
with any fields bound by ``LogContext``:

    logger = get_logger(__name__)

    with LogContext(input="orders.xlsx"):
        logger.info("Sheet loaded", sheet="Orders", rows=6)

    # [input=orders.xlsx] Sheet loaded | sheet=Orders, rows=6
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_request_id: ContextVar[str | None] = ContextVar("request_id", default=None)
_bound_fields: ContextVar[tuple[tuple[str, Any], ...]] = ContextVar(
    "bound_fields", default=()
)


def get_request_id() -> str | None:
    """Return the request id of the current context, if any."""
    return _request_id.get()


def set_request_id(request_id: str | None) -> None:
    _request_id.set(request_id)


def bound_fields() -> dict[str, Any]:
    """Fields bound by the enclosing ``LogContext`` blocks, innermost last."""
    return dict(_bound_fields.get())


def clear_context() -> None:
    """Drop the request id and every bound field."""
    _request_id.set(None)
    _bound_fields.set(())


def format_fields(message: str, fields: dict[str, Any]) -> str:
    if not fields:
        return message
    rendered = ", ".join(f"{key}={value}" for key, value in fields.items())
    return f"{message} | {rendered}"


@dataclass
class ReadMetrics:
    """Counters and timing for one read.

    ``rows_processed`` counts header rows; ``records_written`` counts what
    reached an output sink.
    """

    operation: str
    rows_processed: int = 0
    sheets_read: int = 0
    records_written: int = 0
    duration_seconds: float = 0.0
    _started: float = field(default_factory=time.perf_counter, repr=False)

    def stop(self) -> None:
        self.duration_seconds = time.perf_counter() - self._started

    @property
    def rows_per_second(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return self.rows_processed / self.duration_seconds

    def as_fields(self) -> dict[str, Any]:
        """Log fields for the metrics; zero counters are left out."""
        fields: dict[str, Any] = {"duration_seconds": f"{self.duration_seconds:.3f}"}
        if self.rows_processed:
            fields["rows_processed"] = self.rows_processed
            fields["rows_per_second"] = f"{self.rows_per_second:.0f}"
        if self.sheets_read:
            fields["sheets_read"] = self.sheets_read
        if self.records_written:
            fields["records_written"] = self.records_written
        return fields


class StructuredLogFormatter(logging.Formatter):
    """Formatter that prefixes messages with the request id and bound fields."""

    def format(self, record: logging.LogRecord) -> str:
        context = bound_fields()
        request_id = get_request_id()
        if request_id:
            context = {"request_id": request_id, **context}
        if not context:
            return super().format(record)

        prefix = " ".join(f"{key}={value}" for key, value in context.items())
        message = record.msg
        record.msg = f"[{prefix}] {message}"
        try:
            return super().format(record)
        finally:
            record.msg = message


class StructuredLogger:
    """Thin wrapper over ``logging.Logger`` taking keyword fields."""

    def __init__(self, name: str) -> None:
        self._logger = logging.getLogger(name)

    @property
    def logger(self) -> logging.Logger:
        return self._logger

    def debug(self, message: str, **fields: Any) -> None:
        if self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug(format_fields(message, fields))

    def info(self, message: str, **fields: Any) -> None:
        self._logger.info(format_fields(message, fields))

    def warning(self, message: str, **fields: Any) -> None:
        self._logger.warning(format_fields(message, fields))

    def error(self, message: str, exc_info: bool = False, **fields: Any) -> None:
        self._logger.error(format_fields(message, fields), exc_info=exc_info)

    def exception(self, message: str, **fields: Any) -> None:
        """Log at ERROR with the active exception's traceback."""
        self._logger.exception(format_fields(message, fields))

    def log_metrics(self, metrics: ReadMetrics) -> None:
        self.info(f"Finished {metrics.operation}", **metrics.as_fields())

    def log_read_result(
        self,
        input_name: str,
        success: bool,
        rows_processed: int,
        sheets: list[str],
        aborted: bool = False,
        error_message: str | None = None,
    ) -> None:
        """Log how a full read ended, at INFO on success and ERROR otherwise.

        Args:
            input_name: Workbook path or description.
            success: Whether the read finished without error.
            rows_processed: Rows materialized, header rows included.
            sheets: Names of the sheets visited.
            aborted: Whether the read stopped early.
            error_message: Message of the error that ended the read.
        """
        fields: dict[str, Any] = {
            "input": input_name,
            "rows_processed": rows_processed,
            "sheets": ",".join(sheets),
        }
        if aborted:
            fields["aborted"] = True
        if error_message:
            fields["error"] = error_message
        status = "succeeded" if success else "failed"
        self._logger.log(
            logging.INFO if success else logging.ERROR,
            format_fields(f"Read {status}", fields),
        )


class LogContext:
    """Bind fields to every message logged inside the block.

    A ``request_id`` keyword sets the request id instead of a field. Nested
    blocks override outer fields of the same name until they exit.
    """

    def __init__(self, **fields: Any) -> None:
        self._request_id = fields.pop("request_id", None)
        self._fields = fields
        self._saved: tuple[tuple[str, Any], ...] = ()
        self._saved_request_id: str | None = None

    def __enter__(self) -> "LogContext":
        self._saved = _bound_fields.get()
        self._saved_request_id = _request_id.get()
        if self._request_id is not None:
            _request_id.set(self._request_id)
        merged = {**dict(self._saved), **self._fields}
        _bound_fields.set(tuple(merged.items()))
        return self

    def __exit__(self, *exc: Any) -> None:
        _bound_fields.set(self._saved)
        _request_id.set(self._saved_request_id)


@contextmanager
def timed_operation(logger: StructuredLogger, operation: str) -> Iterator[ReadMetrics]:
    """Time the block and log its metrics when it exits, even on error."""
    metrics = ReadMetrics(operation=operation)
    try:
        yield metrics
    finally:
        metrics.stop()
        logger.log_metrics(metrics)


class RowProgress:
    """Periodic progress lines for one sheet.

    Logs every ``every`` rows and once more when the sheet ends.
    """

    def __init__(
        self, logger: StructuredLogger, sheet: str, total: int, every: int
    ) -> None:
        self._logger = logger
        self._sheet = sheet
        self._total = total
        self._every = max(1, every)
        self._rows = 0
        self._started = time.perf_counter()

    @property
    def rows(self) -> int:
        return self._rows

    def advance(self) -> None:
        self._rows += 1
        if self._rows % self._every == 0:
            self._logger.info(
                "Reading rows", sheet=self._sheet, rows=self._rows, total=self._total
            )

    def finish(self) -> float:
        """Log the sheet summary and return the seconds spent on it."""
        elapsed = time.perf_counter() - self._started
        self._logger.info(
            "Sheet read",
            sheet=self._sheet,
            rows=self._rows,
            seconds=f"{elapsed:.2f}",
        )
        return elapsed


def configure_logging(
    level: int | str = logging.INFO,
    fmt: str = DEFAULT_FORMAT,
) -> None:
    """Install a single stderr handler with the structured formatter on root.

    Only the CLI and API entry points call this; the library leaves handler
    setup to its host.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handler = logging.StreamHandler()
    handler.setFormatter(StructuredLogFormatter(fmt))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)


def get_logger(name: str) -> StructuredLogger:
    return StructuredLogger(name)
