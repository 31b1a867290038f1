"""Calendar helpers for walking day keys.

Days are naive calendar dates keyed by their zero-padded ISO form
(``YYYY-MM-DD``). The same string is used as the WakaTime query parameter,
as the stored high-water-mark, and for ordering, so it must always be
produced by :func:`to_key`.
"""

from datetime import date, timedelta
from typing import Iterator

__all__ = ["to_key", "from_key", "next_date", "days_before", "iter_days"]

DATE_FORMAT = "%Y-%m-%d"


def to_key(day: date) -> str:
    """Format a date as its canonical key."""
    return day.strftime(DATE_FORMAT)


def from_key(key: str) -> date:
    """Parse a canonical key.

    Raises:
        ValueError: If ``key`` is not a valid ``YYYY-MM-DD`` date
    """
    parsed = date.fromisoformat(key)
    if to_key(parsed) != key:
        raise ValueError(f"Not a canonical date key: {key!r}")
    return parsed


def next_date(key: str) -> str:
    """Return the key of the day after ``key``.

    Month and year rollover and leap days follow the Gregorian calendar:
    ``next_date("2020-02-28") == "2020-02-29"``,
    ``next_date("2019-12-31") == "2020-01-01"``.
    """
    return to_key(from_key(key) + timedelta(days=1))


def days_before(key: str, days: int) -> str:
    """Return the key ``days`` calendar days before ``key``."""
    return to_key(from_key(key) - timedelta(days=days))


def iter_days(start: str, end: str) -> Iterator[str]:
    """Yield every day key from ``start`` up to but excluding ``end``."""
    cursor = start
    while cursor < end:
        yield cursor
        cursor = next_date(cursor)
