"""
Ledger Engine Package

Pure derivations over in-memory collections: scoping and filtering,
grouping and totals, budget progress, rollover, recurring expansion and the
auto-expansion policy. Nothing here performs I/O or keeps state between
calls, so every view is recomputed from current data.
"""

from household_ledger.engine.budgets import (
    budget_month_options,
    budget_transactions,
    budgets_for_month,
    category_spent,
    find_budget,
    get_budget_progress,
    resolve_view_month,
    search_budgets,
    top_contributors,
)
from household_ledger.engine.expansion import (
    auto_expand,
    expanded_ids,
    toggle,
    toggle_show_all,
)
from household_ledger.engine.filters import (
    date_interval_filter,
    filter_by_person,
    resolve_interval,
    table_filter,
)
from household_ledger.engine.grouping import compute_totals, group_by_month
from household_ledger.engine.recurring import expand_recurring, materialize
from household_ledger.engine.reports import (
    category_expense_totals,
    monthly_expense_totals,
    net_worth,
)
from household_ledger.engine.rollover import (
    budget_summary,
    build_budget_lines,
    compute_rollover,
    effective_budget,
    effective_progress,
    status_for,
)

__all__ = [
    # Filters
    "date_interval_filter",
    "filter_by_person",
    "resolve_interval",
    "table_filter",
    # Grouping
    "compute_totals",
    "group_by_month",
    # Budgets
    "budget_month_options",
    "budget_transactions",
    "budgets_for_month",
    "category_spent",
    "find_budget",
    "get_budget_progress",
    "resolve_view_month",
    "search_budgets",
    "top_contributors",
    # Rollover
    "budget_summary",
    "build_budget_lines",
    "compute_rollover",
    "effective_budget",
    "effective_progress",
    "status_for",
    # Recurring
    "expand_recurring",
    "materialize",
    # Expansion
    "auto_expand",
    "expanded_ids",
    "toggle",
    "toggle_show_all",
    # Reports
    "category_expense_totals",
    "monthly_expense_totals",
    "net_worth",
]
