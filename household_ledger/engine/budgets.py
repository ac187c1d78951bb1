"""
Budget Progress Calculator

All figures here come from the person-scoped collections; the dashboard
date range never applies to budgets.

DESIGN DECISION: "no budget" is ``None``, never a zero progress. A budget
row with amount 0 exists and yields percentage 0; a missing row does not
exist and yields None.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from household_ledger.models.ledger import Budget, Transaction, TransactionKind
from household_ledger.models.results import ZERO, BudgetProgress, Contributor
from household_ledger.months import current_month, to_month_key

HUNDRED = Decimal("100")


def find_budget(budgets: Iterable[Budget], category: str, month: str) -> Optional[Budget]:
    """First budget row for (category, month), or None."""
    for budget in budgets:
        if budget.category == category and budget.month == month:
            return budget
    return None


def _month_expenses(transactions: Iterable[Transaction], category: str, month: str) -> list[Transaction]:
    return [
        t for t in transactions
        if t.kind == TransactionKind.EXPENSE
        and t.category == category
        and t.date
        and t.date.startswith(month)
    ]


def category_spent(transactions: Iterable[Transaction], category: str, month: str) -> Decimal:
    """Sum of one category's expenses in one month."""
    return sum((t.amount for t in _month_expenses(transactions, category, month)), ZERO)


def progress_for(budget: Decimal, spent: Decimal) -> BudgetProgress:
    """Spent-vs-budget figures for a given budget amount."""
    percentage = spent / budget * HUNDRED if budget > 0 else ZERO
    return BudgetProgress(
        budget=budget,
        spent=spent,
        percentage=percentage,
        remaining=budget - spent,
        over_by=max(ZERO, spent - budget),
    )


def get_budget_progress(
    category: str,
    month: str,
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
) -> Optional[BudgetProgress]:
    """
    Progress of one category in one month.

    Args:
        category: Budget category
        month: Month key, YYYY-MM
        transactions: Person-scoped transactions (not date-scoped)
        budgets: Person-scoped budgets

    Returns:
        The progress figures, or None when no budget row exists
    """
    row = find_budget(budgets, category, month)
    if row is None:
        return None
    return progress_for(row.amount, category_spent(transactions, category, month))


def budget_transactions(
    category: str,
    month: str,
    transactions: Iterable[Transaction],
) -> list[Transaction]:
    """The expenses behind a progress figure, newest first."""
    rows = _month_expenses(transactions, category, month)
    return sorted(rows, key=lambda t: t.date, reverse=True)


def top_contributors(transactions: Iterable[Transaction], limit: int = 3) -> list[Contributor]:
    """
    Largest spending descriptions among the given transactions.

    Descriptions are trimmed before grouping; a blank one counts as "Unknown".
    Ties keep first-seen order.
    """
    totals: dict[str, Decimal] = {}
    for t in transactions:
        key = t.description.strip() or "Unknown"
        totals[key] = totals.get(key, ZERO) + t.amount

    ranked = sorted(totals.items(), key=lambda item: item[1], reverse=True)
    return [Contributor(description=desc, total=total) for desc, total in ranked[:limit]]


def budget_month_options(
    budgets: Iterable[Budget],
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> list[str]:
    """
    Months the budget tab can show, newest first.

    Taken from budget months and transaction dates. Falls back to the
    current month when there is no data at all.
    """
    months = {b.month for b in budgets if b.month}
    months.update(to_month_key(t.date) for t in transactions if t.date)
    months.discard("")
    options = sorted(months, reverse=True)
    return options or [current_month(today)]


def resolve_view_month(view_month: str, options: list[str]) -> str:
    """Keep the selected month if it is still an option, else snap to the newest."""
    if view_month in options:
        return view_month
    return options[0]


def budgets_for_month(budgets: Iterable[Budget], month: str) -> list[Budget]:
    return [b for b in budgets if b.month == month]


def search_budgets(
    budgets: Iterable[Budget],
    query: str,
    transactions: Iterable[Transaction],
) -> list[Budget]:
    """
    Budget rows matching a search, case-insensitive.

    A row matches on its category, or when one of that category's expenses
    in the row's month has a matching description. A blank query keeps all.
    """
    rows = list(budgets)
    needle = (query or "").strip().lower()
    if not needle:
        return rows

    transactions = list(transactions)
    matched = []
    for b in rows:
        if needle in b.category.lower():
            matched.append(b)
            continue
        if any(needle in t.description.lower() for t in _month_expenses(transactions, b.category, b.month)):
            matched.append(b)
    return matched
