"""
Month Keys

Budgets are evaluated per calendar month. A month is identified by a
canonical ``YYYY-MM`` key; storage keeps the same month as the full date of
its first day (``YYYY-MM-01``).

Every helper here is a pure function of its arguments. Nothing reads the
clock unless ``today`` is omitted.
"""

import calendar
import re
from datetime import date, datetime
from typing import Optional, Union

MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")
STORAGE_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

DateLike = Union[str, date, None]


def to_month_key(value: DateLike) -> str:
    """
    Reduce a date-like value to its ``YYYY-MM`` key.

    Accepts ``YYYY-MM``, ``YYYY-MM-DD``, ISO datetimes and ``date`` objects.
    Returns "" when the first seven characters are not a valid month key.
    """
    if not value:
        return ""
    key = str(value)[:7]
    return key if MONTH_KEY_RE.match(key) else ""


def month_to_storage_date(value: DateLike) -> Optional[str]:
    """
    Convert a month key to the storage form (first day of the month).

    A value already in full-date form is returned unchanged.
    Anything else yields None.
    """
    if not value:
        return None
    text = str(value)
    if STORAGE_DATE_RE.match(text):
        return text
    if MONTH_KEY_RE.match(text):
        return f"{text}-01"
    return None


def split_month_key(key: str) -> tuple[int, int]:
    """Return (year, month) for a valid key, raise ValueError otherwise."""
    if not MONTH_KEY_RE.match(str(key)):
        raise ValueError(f"Invalid month key: {key!r}")
    year, month = str(key).split("-")
    return int(year), int(month)


def make_month_key(year: int, month: int) -> str:
    """Build a key from a (year, month) pair, normalising month overflow."""
    # month 0 -> December of year-1, month 13 -> January of year+1
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    return f"{year:04d}-{month:02d}"


def shift_month(key: str, delta: int) -> str:
    year, month = split_month_key(key)
    return make_month_key(year, month + delta)


def previous_month(key: str) -> str:
    return shift_month(key, -1)


def next_month(key: str) -> str:
    return shift_month(key, 1)


def current_month(today: Optional[date] = None) -> str:
    today = today or date.today()
    return make_month_key(today.year, today.month)


def month_bounds(key: str) -> tuple[date, date]:
    """First and last calendar day of a month."""
    year, month = split_month_key(key)
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def day_in_month(key: str, day: int) -> str:
    """
    Full date for ``day`` inside the month, clamped to the days that exist.

    ``day_in_month("2025-02", 31)`` is ``"2025-02-28"``.
    """
    year, month = split_month_key(key)
    last_day = calendar.monthrange(year, month)[1]
    safe_day = min(max(int(day), 1), last_day)
    return f"{year:04d}-{month:02d}-{safe_day:02d}"


def month_label(key: str) -> str:
    """
    Long display label, e.g. ``"December 2024"``.

    Built from the numeric parts so no time zone can shift it into the
    previous month. An unparsable key is returned as-is.
    """
    if not key:
        return ""
    try:
        year, month = split_month_key(key)
    except ValueError:
        return key
    return f"{calendar.month_name[month]} {year}"


def parse_day(value: DateLike) -> Optional[date]:
    """Parse a stored transaction date. Returns None when it cannot be read."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def month_of(day: date) -> str:
    """Month key of a calendar day."""
    return make_month_key(day.year, day.month)
