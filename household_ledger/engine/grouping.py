"""
Grouping & Totals

Month groups feed the transactions table; the grand total is computed once
over the ungrouped rows, so a row with an unreadable date still counts in
the Totals line even though it belongs to no month group.
"""

from typing import Iterable

from household_ledger.models.ledger import Transaction, TransactionKind
from household_ledger.models.results import ZERO, MonthGroup, Totals
from household_ledger.months import month_label, month_of, parse_day


def compute_totals(transactions: Iterable[Transaction]) -> Totals:
    income = ZERO
    expenses = ZERO
    for t in transactions:
        if t.kind == TransactionKind.INCOME:
            income += t.amount
        else:
            expenses += t.amount
    return Totals(income=income, expenses=expenses)


def group_by_month(transactions: Iterable[Transaction]) -> list[MonthGroup]:
    """
    Group transactions by calendar month, most recent month first.

    Members keep their input order. Transactions whose date cannot be read
    are left out.
    """
    members: dict[str, list[Transaction]] = {}
    for t in transactions:
        day = parse_day(t.date)
        if day is None:
            continue
        members.setdefault(month_of(day), []).append(t)

    groups = []
    for key in sorted(members, reverse=True):
        totals = compute_totals(members[key])
        groups.append(
            MonthGroup(
                key=key,
                label=month_label(key),
                items=members[key],
                income=totals.income,
                expenses=totals.expenses,
            )
        )
    return groups
