"""Dashboard aggregates over already-filtered collections."""

from decimal import Decimal
from typing import Iterable

from household_ledger.models.ledger import Asset, Liability, Transaction, TransactionKind
from household_ledger.models.results import ZERO, NetWorth
from household_ledger.months import to_month_key


def category_expense_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense total per category, in first-seen order."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.kind == TransactionKind.EXPENSE:
            totals[t.category] = totals.get(t.category, ZERO) + t.amount
    return totals


def monthly_expense_totals(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Expense total per month key, oldest month first."""
    totals: dict[str, Decimal] = {}
    for t in transactions:
        if t.kind != TransactionKind.EXPENSE:
            continue
        key = to_month_key(t.date)
        if key:
            totals[key] = totals.get(key, ZERO) + t.amount
    return dict(sorted(totals.items()))


def net_worth(assets: Iterable[Asset], liabilities: Iterable[Liability]) -> NetWorth:
    return NetWorth(
        assets=sum((a.value for a in assets), ZERO),
        liabilities=sum((item.value for item in liabilities), ZERO),
    )
