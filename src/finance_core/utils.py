"""Shared utilities for the aggregation pipeline.

This module provides date parsing and money helpers used across provider
clients and the orchestrator:

- Strict request-date parsing (YYYY-MM-DD, real calendar dates only)
- Provider-local day windows expressed as UTC instants
- Lenient parsing of provider timestamps into local dates and times
- Decimal conversion and two-place rounding

Examples:
    >>> from finance_core.utils import parse_date, local_day_window
    >>> local_day_window(parse_date("2024-05-01"), parse_date("2024-05-01"))
    ('2024-05-01T04:00:00.000Z', '2024-05-02T03:59:59.999Z')

"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

import pandas as pd

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

CENTS = Decimal("0.01")


def parse_date(s: str) -> date:
    """Parse a date string in YYYY-MM-DD format.

    Args:
        s: Date string in ISO format (YYYY-MM-DD).

    Returns:
        Parsed date object.

    Raises:
        ValueError: If the string is not exactly YYYY-MM-DD or is not a real
            calendar date (e.g. month 13).

    Examples:
        >>> parse_date("2023-01-15")
        datetime.date(2023, 1, 15)

    """
    if not isinstance(s, str) or not DATE_RE.match(s):
        raise ValueError(f"Expected YYYY-MM-DD, got {s!r}")
    return datetime.strptime(s, "%Y-%m-%d").date()


def is_valid_date(s: Any) -> bool:
    """Return True if ``s`` is a YYYY-MM-DD string naming a real date."""
    try:
        parse_date(s)
    except ValueError:
        return False
    return True


def _iso_z(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + (
        f"{dt.microsecond // 1000:03d}Z"
    )


def local_day_window(start: date, end: date, utc_offset_hours: int = -4) -> tuple[str, str]:
    """Return the UTC instants covering whole provider-local days.

    The window starts at local midnight of ``start`` and ends one millisecond
    before local midnight following ``end``.

    Args:
        start: First local day (inclusive).
        end: Last local day (inclusive).
        utc_offset_hours: Provider-local offset from UTC.

    Returns:
        Tuple of ISO-8601 UTC strings with millisecond precision.

    """
    tz = timezone(timedelta(hours=utc_offset_hours))
    begin = datetime(start.year, start.month, start.day, tzinfo=tz)
    finish = datetime(end.year, end.month, end.day, tzinfo=tz) + timedelta(days=1)
    finish -= timedelta(milliseconds=1)
    return _iso_z(begin), _iso_z(finish)


def to_local_timestamp(value: Any, utc_offset_hours: int = -4) -> pd.Timestamp | None:
    """Parse a provider timestamp and convert it to provider-local time.

    Naive timestamps are taken as already local. Unparseable or empty values
    yield None.
    """
    if value is None or value == "":
        return None
    ts = pd.to_datetime(value, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(timezone(timedelta(hours=utc_offset_hours))).tz_localize(None)
    return ts


def format_date(value: Any, utc_offset_hours: int = -4) -> str:
    """Format a provider date or timestamp as YYYY-MM-DD ("" when missing)."""
    ts = to_local_timestamp(value, utc_offset_hours)
    return ts.strftime("%Y-%m-%d") if ts is not None else ""


def format_time(value: Any, utc_offset_hours: int = -4) -> str:
    """Format a provider timestamp as local HH:MM ("" when missing)."""
    ts = to_local_timestamp(value, utc_offset_hours)
    return ts.strftime("%H:%M") if ts is not None else ""


def to_decimal(value: Any) -> Decimal:
    """Convert a provider amount (string, int or float) to Decimal.

    Empty values count as zero.

    Raises:
        ValueError: If the value is not numeric or not finite (NaN, Infinity).
    """
    if value is None or value == "":
        return Decimal("0")
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a numeric amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Not a finite amount: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round a monetary value to two decimal places (half up)."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)
