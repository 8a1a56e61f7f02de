"""Spreadsheet serial date conversion.

Spreadsheets store dates as a day count from a fixed epoch (1899-12-30 for
the 1900 date system, 1904-01-01 for the 1904 system). These helpers turn
such serial numbers into timezone-aware UTC datetimes.
"""

from __future__ import annotations

import math
from datetime import UTC, date, datetime, timedelta
from typing import Any

import pandas as pd

from fast_sheet_reader.utils.exceptions import ConversionError

EPOCH_1904_OFFSET_DAYS = 1462
"""Days between the 1900 and the 1904 date systems' day zero."""

DAYS_BEFORE_UNIX_EPOCH = 70 * 365 + 19
"""Serial day number of 1970-01-01 in the 1900 date system."""

_MS_PER_HOUR = 60 * 60 * 1000
_MS_PER_DAY = 24 * _MS_PER_HOUR
_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


def parse_date(serial: int | float, epoch1904: bool = False) -> datetime:
    """Convert a spreadsheet serial number to a UTC datetime.

    The result is rounded to the nearest millisecond and shifted by half a
    day, so whole serial numbers land on noon UTC.

    Args:
        serial: Day count in the workbook's date system.
        epoch1904: True when the workbook uses the 1904 date system.

    Returns:
        Timezone-aware datetime in UTC.

    Raises:
        ConversionError: If the serial is not a finite number.
    """
    if isinstance(serial, bool) or not isinstance(serial, (int, float)):
        raise ConversionError(
            f"Serial date must be a number, got {type(serial).__name__}",
            value=serial,
            target="date",
        )
    if not math.isfinite(serial):
        raise ConversionError("Serial date must be finite", value=serial, target="date")

    if epoch1904:
        serial += EPOCH_1904_OFFSET_DAYS

    milliseconds = round((serial - DAYS_BEFORE_UNIX_EPOCH) * _MS_PER_DAY)
    milliseconds += 12 * _MS_PER_HOUR
    try:
        return _UNIX_EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError as e:
        raise ConversionError(
            "Serial date is outside the supported calendar range",
            value=serial,
            target="date",
        ) from e


def _parse_int(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _parse_calendar_string(text: str) -> datetime | None:
    try:
        timestamp = pd.to_datetime(text, utc=True)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(timestamp):
        return None
    parsed: datetime = timestamp.to_pydatetime()
    return parsed


def try_convert_date(value: Any, epoch1904: bool = False) -> Any:
    """Attempt to convert a cell value to a datetime.

    Numbers are treated as serial dates. Strings holding an integer are
    treated as serial dates too; other strings go through calendar parsing.
    Any other value is stringified and integer-parsed. Values that cannot
    be converted are returned unchanged.

    Args:
        value: The cell value to convert.
        epoch1904: True when the workbook uses the 1904 date system.

    Returns:
        A timezone-aware datetime (naive ones are taken as UTC), or the
        original value if conversion failed.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)

    try:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return parse_date(value, epoch1904)

        if isinstance(value, str):
            serial = _parse_int(value)
            if serial is None:
                parsed = _parse_calendar_string(value)
                return value if parsed is None else parsed
            return parse_date(serial, epoch1904)

        serial = _parse_int(str(value))
        if serial is None:
            return value
        return parse_date(serial, epoch1904)
    except ConversionError:
        return value
