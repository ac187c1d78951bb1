"""
Rollover Engine

With rollover on, what a category left unspent last month is added to this
month's budget, and what it overspent is taken away:

    effective_budget = max(0, budget + rollover)

Rollover is signed, never stored, and recomputed from current data on every
call. A category with no budget row last month has no rollover.

DESIGN DECISION: every displayed figure (percentage, remaining, over-by,
status) is derived from the effective budget. With rollover off the
effective figures are exactly the raw ones.
"""

from decimal import Decimal
from typing import Iterable, Optional

from household_ledger.engine.budgets import (
    HUNDRED,
    budgets_for_month,
    get_budget_progress,
    progress_for,
)
from household_ledger.models.ledger import Budget, Transaction
from household_ledger.models.results import (
    ZERO,
    BudgetLine,
    BudgetProgress,
    BudgetStatus,
    BudgetSummary,
)
from household_ledger.months import previous_month

WARNING_THRESHOLD = Decimal("80")


def compute_rollover(
    month: str,
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
) -> dict[str, Decimal]:
    """
    Signed carry-forward per category into ``month``.

    Each budget row of the previous month adds that category's remaining,
    so duplicate rows for one category add up.
    """
    transactions = list(transactions)
    budgets = list(budgets)
    prev = previous_month(month)

    rollover: dict[str, Decimal] = {}
    for b in budgets_for_month(budgets, prev):
        progress = get_budget_progress(b.category, prev, transactions, budgets)
        if progress is None:
            continue
        rollover[b.category] = rollover.get(b.category, ZERO) + progress.remaining
    return rollover


def effective_budget(base_budget: Decimal, rollover: Decimal) -> Decimal:
    return max(ZERO, base_budget + rollover)


def effective_progress(progress: BudgetProgress, rollover: Decimal = ZERO) -> BudgetProgress:
    """The progress figures recomputed against the effective budget."""
    return progress_for(effective_budget(progress.budget, rollover), progress.spent)


def status_for(percentage: Decimal) -> BudgetStatus:
    if percentage < WARNING_THRESHOLD:
        return BudgetStatus.ON_TRACK
    if percentage < HUNDRED:
        return BudgetStatus.WARNING
    return BudgetStatus.OVER


def build_budget_lines(
    month: str,
    transactions: Iterable[Transaction],
    budgets: Iterable[Budget],
    rollover_enabled: bool = True,
    rows: Optional[Iterable[Budget]] = None,
    expanded_ids: Optional[set] = None,
) -> list[BudgetLine]:
    """
    Budget lines of ``month`` with rollover folded in.

    Args:
        month: Month key being viewed
        transactions: Person-scoped transactions
        budgets: Person-scoped budgets (all months)
        rollover_enabled: The rollover flag
        rows: Which budget rows to show; defaults to every row of ``month``
        expanded_ids: Budget ids whose detail view is open
    """
    transactions = list(transactions)
    budgets = list(budgets)
    rows = budgets_for_month(budgets, month) if rows is None else list(rows)
    expanded_ids = expanded_ids or set()
    rollovers = compute_rollover(month, transactions, budgets) if rollover_enabled else {}

    lines = []
    for b in rows:
        progress = get_budget_progress(b.category, b.month, transactions, budgets)
        if progress is None:
            continue
        rollover = rollovers.get(b.category, ZERO)
        effective = effective_progress(progress, rollover)
        lines.append(
            BudgetLine(
                budget=b,
                progress=progress,
                rollover=rollover,
                effective_budget=effective.budget,
                effective_percentage=effective.percentage,
                effective_remaining=effective.remaining,
                effective_over_by=effective.over_by,
                status=status_for(effective.percentage),
                expanded=b.id in expanded_ids,
            )
        )
    return lines


def budget_summary(lines: Iterable[BudgetLine]) -> BudgetSummary:
    """Totals over a month's budget lines, using effective budgets."""
    total_budget = ZERO
    total_spent = ZERO
    for line in lines:
        total_budget += line.effective_budget
        total_spent += line.progress.spent
    return BudgetSummary(total_budget=total_budget, total_spent=total_spent)
