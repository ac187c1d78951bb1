"""
Scope Filter Pipeline

Every view of the ledger is derived in the same order:

    person scope  ->  table filters (category, kind, search)  ->  date interval

Budgets and rollover stop after the person scope: a budget is evaluated per
calendar month, whatever date range the dashboard shows.
"""

from datetime import date
from typing import Iterable, Optional, TypeVar, Union

from household_ledger.models.ledger import Person, Transaction
from household_ledger.models.view import ALL, DateInterval, DateRangePreset, TransactionFilter
from household_ledger.months import current_month, month_bounds, parse_day, shift_month

T = TypeVar("T")


def filter_by_person(items: Iterable[T], person: Union[Person, str]) -> list[T]:
    """
    Scope a collection to one person.

    ``joint`` keeps everything. Any other person keeps their own entries
    plus the joint ones. Works on any entity with a ``person`` field.
    """
    if person == Person.JOINT:
        return list(items)
    return [item for item in items if item.person == person or item.person == Person.JOINT]


def table_filter(transactions: Iterable[Transaction], criteria: TransactionFilter) -> list[Transaction]:
    """Apply the category, kind and search filters, in that order."""
    rows = list(transactions)

    if criteria.category != ALL:
        rows = [t for t in rows if t.category == criteria.category]

    if criteria.kind != ALL:
        rows = [t for t in rows if t.kind == criteria.kind]

    if criteria.search_text.strip():
        needle = criteria.search_text.lower()
        rows = [
            t for t in rows
            if needle in t.date.lower()
            or needle in t.description.lower()
            or needle in t.category.lower()
        ]

    return rows


def resolve_interval(
    preset: Union[DateRangePreset, str],
    today: Optional[date] = None,
    custom_start: Optional[date] = None,
    custom_end: Optional[date] = None,
) -> DateInterval:
    """
    Turn a named date range into concrete inclusive bounds.

    Custom bounds that are not supplied default to January 1st and today.
    """
    today = today or date.today()
    preset = DateRangePreset(preset)
    this_month = current_month(today)

    if preset == DateRangePreset.THIS_MONTH:
        start, end = month_bounds(this_month)
    elif preset == DateRangePreset.LAST_MONTH:
        start, end = month_bounds(shift_month(this_month, -1))
    elif preset == DateRangePreset.THREE_MONTHS:
        start = month_bounds(shift_month(this_month, -2))[0]
        end = month_bounds(this_month)[1]
    elif preset == DateRangePreset.YEAR_TO_DATE:
        start, end = date(today.year, 1, 1), today
    else:
        start = custom_start or date(today.year, 1, 1)
        end = custom_end or today

    return DateInterval(start=start, end=end)


def date_interval_filter(transactions: Iterable[Transaction], interval: DateInterval) -> list[Transaction]:
    """Keep transactions dated inside the interval. Unreadable dates are dropped."""
    kept = []
    for t in transactions:
        day = parse_day(t.date)
        if day is not None and interval.contains(day):
            kept.append(t)
    return kept
