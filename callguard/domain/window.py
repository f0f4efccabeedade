"""
Normalization of caller-supplied dates into UTC query windows.

Day boundaries are always derived by overwriting the UTC time fields of an
existing instant. They are never rebuilt from local year/month/day
components: doing so lets a local offset shift the boundary into the
neighbouring day, which either drops a slot sitting on the boundary or pulls
in bookings from the adjacent day.
"""

from datetime import date, datetime
from typing import Optional, Union

import pendulum
from pendulum import DateTime

from .exceptions import InvalidWindow
from .models import TimeWindow

InstantLike = Union[DateTime, datetime, date, str]

UTC = "UTC"


def to_utc(value: InstantLike) -> DateTime:
    """
    Convert a caller-supplied instant to a UTC pendulum DateTime.

    Args:
        value: pendulum/stdlib datetime, date or ISO-8601 string. Naive
            datetimes and strings without an offset are read as UTC.

    Returns:
        The same instant expressed in UTC

    Raises:
        InvalidWindow: If the value cannot be interpreted as an instant
    """
    if isinstance(value, DateTime):
        return value.in_timezone(UTC)

    if isinstance(value, datetime):
        return pendulum.instance(value, tz=UTC).in_timezone(UTC)

    if isinstance(value, date):
        return pendulum.datetime(value.year, value.month, value.day, tz=UTC)

    if isinstance(value, str):
        try:
            parsed = pendulum.parse(value, tz=UTC)
        except ValueError as exc:
            raise InvalidWindow(f"Cannot parse instant {value!r}: {exc}") from exc
        if not isinstance(parsed, DateTime):
            raise InvalidWindow(f"{value!r} does not describe an instant")
        return parsed.in_timezone(UTC)

    raise InvalidWindow(f"Unsupported instant type: {type(value).__name__}")


def day_start(value: InstantLike) -> DateTime:
    """First instant of the UTC day containing ``value``."""
    return to_utc(value).set(hour=0, minute=0, second=0, microsecond=0)


def day_end(value: InstantLike) -> DateTime:
    """Last millisecond (23:59:59.999) of the UTC day containing ``value``."""
    return to_utc(value).set(hour=23, minute=59, second=59, microsecond=999000)


def normalize_day(reference: InstantLike) -> TimeWindow:
    """Window covering the UTC calendar day of ``reference``."""
    return TimeWindow(start=day_start(reference), end=day_end(reference))


def normalize_window(
    start: InstantLike,
    end: Optional[InstantLike] = None,
    whole_days: bool = True,
) -> TimeWindow:
    """
    Normalize a raw date range into an unambiguous UTC window.

    Args:
        start: Start instant or date
        end: End instant or date; defaults to the day of ``start``
        whole_days: Widen the range to full UTC days. When False the
            instants are used as given (converted to UTC).

    Returns:
        TimeWindow in UTC

    Raises:
        InvalidWindow: If start is after end or an input cannot be parsed
    """
    if end is None:
        end = start

    start_utc = to_utc(start)
    end_utc = to_utc(end)

    if start_utc > end_utc:
        raise InvalidWindow(f"Window start {start_utc} is after window end {end_utc}")

    if whole_days:
        return TimeWindow(start=day_start(start_utc), end=day_end(end_utc))

    return TimeWindow(start=start_utc, end=end_utc)
