"""
Auto-Expansion Policy

Each budget line's detail view is collapsed, expanded, or manually pinned.
Lines that go over their effective budget open on their own; they never
close on their own. Once the user toggles a line it is pinned and the
automatic rule leaves it alone for the rest of the session.
"""

from typing import Iterable
from uuid import UUID

from household_ledger.models.results import BudgetLine
from household_ledger.models.view import BudgetLineExpansion
from household_ledger.engine.budgets import HUNDRED


def auto_expand(
    expansion: dict[UUID, BudgetLineExpansion],
    lines: Iterable[BudgetLine],
) -> dict[UUID, BudgetLineExpansion]:
    """
    Apply the automatic rule to the lines of the viewed month.

    Returns a new mapping; the input is not modified.
    """
    result = dict(expansion)
    for line in lines:
        line_id = line.budget.id
        state = result.get(line_id, BudgetLineExpansion())
        if state.pinned or state.expanded:
            continue
        if line.effective_percentage > HUNDRED:
            result[line_id] = state.model_copy(update={"expanded": True})
    return result


def toggle(
    expansion: dict[UUID, BudgetLineExpansion],
    budget_id: UUID,
) -> dict[UUID, BudgetLineExpansion]:
    """User toggle: flip the line and pin it. Collapsing also hides the full list."""
    result = dict(expansion)
    state = result.get(budget_id, BudgetLineExpansion())
    expanded = not state.expanded
    result[budget_id] = BudgetLineExpansion(
        expanded=expanded,
        pinned=True,
        show_all_transactions=state.show_all_transactions if expanded else False,
    )
    return result


def toggle_show_all(
    expansion: dict[UUID, BudgetLineExpansion],
    budget_id: UUID,
) -> dict[UUID, BudgetLineExpansion]:
    result = dict(expansion)
    state = result.get(budget_id, BudgetLineExpansion())
    result[budget_id] = state.model_copy(
        update={"show_all_transactions": not state.show_all_transactions}
    )
    return result


def expanded_ids(expansion: dict[UUID, BudgetLineExpansion]) -> set[UUID]:
    return {line_id for line_id, state in expansion.items() if state.expanded}
