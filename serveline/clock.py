"""Calendar arithmetic on epoch seconds, without relying on the platform's time zone data."""

from __future__ import annotations

import dataclasses
import datetime as _dt
from dataclasses import dataclass

_NANOS_PER_SECOND = 1_000_000_000
_MAX_U64 = 2**64 - 1
_EPOCH = _dt.datetime(1970, 1, 1, tzinfo=_dt.timezone.utc)

_MONTH_DAYS = {1: 31, 3: 31, 4: 30, 5: 31, 6: 30, 7: 31, 8: 31, 9: 30, 10: 31, 11: 30, 12: 31}


def is_leap_year(year: int) -> bool:
    """Return True when `year` has 366 days in the Gregorian calendar."""
    if year % 400 == 0:
        return True
    if year % 100 == 0:
        return False
    return year % 4 == 0


def month_len_days(year: int, month: int) -> int:
    """Return the number of days in `month` (1-12) of `year`."""
    if month == 2:
        return 29 if is_leap_year(year) else 28
    try:
        return _MONTH_DAYS[month]
    except KeyError:
        raise ValueError(f"month out of range: {month}") from None


@dataclass
class DateTime:
    """A UTC calendar date and time. Leap seconds are ignored."""

    year: int = 1970
    month: int = 1
    day: int = 1
    hour: int = 0
    minute: int = 0
    second: int = 0

    @classmethod
    def from_epoch(cls, epoch_seconds: int) -> DateTime:
        """Build the date and time `epoch_seconds` after 1970-01-01T00:00:00Z."""
        result = cls(second=epoch_seconds)
        result.balance()
        return result

    def _balance_month(self) -> None:
        if self.month > 12:
            delta_years = (self.month - 1) // 12
            self.year += delta_years
            self.month -= 12 * delta_years

    def _balance_day(self) -> None:
        self._balance_month()
        while self.day > 366:
            self.day -= 366 if is_leap_year(self.year) else 365
            self.year += 1
        while self.day > month_len_days(self.year, self.month):
            self.day -= month_len_days(self.year, self.month)
            self.month += 1
            self._balance_month()

    def _balance_hour(self) -> None:
        if self.hour > 23:
            delta_days = self.hour // 24
            self.day += delta_days
            self.hour -= 24 * delta_days
        self._balance_day()

    def _balance_minute(self) -> None:
        if self.minute > 59:
            delta_hours = self.minute // 60
            self.hour += delta_hours
            self.minute -= 60 * delta_hours
        self._balance_hour()

    def balance(self) -> None:
        """Carry overflowing seconds, minutes, hours, days and months upward."""
        if self.second > 59:
            delta_minutes = self.second // 60
            self.minute += delta_minutes
            self.second -= 60 * delta_minutes
        self._balance_minute()

    def __add__(self, other: object) -> DateTime:
        if not isinstance(other, _dt.timedelta):
            return NotImplemented
        if other < _dt.timedelta(0):
            raise ValueError(f"cannot add a negative duration: {other!r}")
        result = dataclasses.replace(self, second=self.second + other.days * 86400 + other.seconds)
        result.balance()
        return result


def _nanos_since_epoch(timestamp: int | float | _dt.datetime) -> int:
    if isinstance(timestamp, _dt.datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=_dt.timezone.utc)
        delta = timestamp - _EPOCH
        return (delta.days * 86400 + delta.seconds) * _NANOS_PER_SECOND + delta.microseconds * 1000
    if isinstance(timestamp, int):
        return timestamp * _NANOS_PER_SECOND
    return round(timestamp * _NANOS_PER_SECOND)


def to_datetime(timestamp: int | float | _dt.datetime) -> DateTime:
    """Convert epoch seconds or a datetime (naive means UTC) to a `DateTime`."""
    nanos = _nanos_since_epoch(timestamp)
    if nanos < 0:
        raise ValueError(f"timestamp is before the epoch: {timestamp!r}")
    return DateTime.from_epoch(nanos // _NANOS_PER_SECOND)


def iso8601_utc(timestamp: int | float | _dt.datetime) -> str:
    """Format a timestamp like `2023-04-14T00:32:16Z`."""
    dt = to_datetime(timestamp)
    return (
        f"{dt.year:04}-{dt.month:02}-{dt.day:02}"
        f"T{dt.hour:02}:{dt.minute:02}:{dt.second:02}Z"
    )


def epoch_ns(timestamp: int | float | _dt.datetime) -> int:
    """Nanoseconds since the epoch; 0 for earlier times.

    Raises ValueError when the value does not fit in 64 unsigned bits.
    """
    nanos = max(_nanos_since_epoch(timestamp), 0)
    if nanos > _MAX_U64:
        raise ValueError(f"timestamp overflows 64-bit nanoseconds: {timestamp!r}")
    return nanos


def epoch_s(timestamp: int | float | _dt.datetime) -> int:
    """Whole seconds since the epoch; 0 for earlier times."""
    return max(_nanos_since_epoch(timestamp), 0) // _NANOS_PER_SECOND