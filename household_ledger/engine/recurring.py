"""
Recurring Rule Expander

Turns the active recurring rules into concrete transactions for one month.

A candidate is skipped when a transaction with the same
(date, description, amount, kind, person) already exists. There is no link
from a transaction back to its rule, so this field match is what makes a
second run for the same month add nothing. Only recorded transactions are
matched: two rules with identical fields both produce a row on the first run.
"""

from typing import Iterable

import structlog

from household_ledger.models.ledger import RecurringRule, Transaction, TransactionDraft
from household_ledger.models.results import RecurringExpansion
from household_ledger.months import day_in_month, split_month_key

logger = structlog.get_logger()


def materialize(rule: RecurringRule, month: str) -> TransactionDraft:
    """The transaction a rule produces in ``month``."""
    return TransactionDraft(
        date=day_in_month(month, rule.day_of_month),
        description=rule.description,
        category=rule.category,
        amount=rule.amount,
        kind=rule.kind,
        person=rule.person,
    )


def expand_recurring(
    rules: Iterable[RecurringRule],
    month: str,
    existing: Iterable[Transaction],
) -> RecurringExpansion:
    """
    New transactions to add for ``month``.

    Args:
        rules: Recurring rules; inactive ones are ignored
        month: Target month key, YYYY-MM
        existing: Transactions already recorded

    Returns:
        The drafts to insert. ``nothing_to_add`` is set when there are none.

    Raises:
        ValueError: If ``month`` is not a valid month key
    """
    split_month_key(month)

    seen = {t.duplicate_key() for t in existing}
    drafts = []
    for rule in rules:
        if not rule.active:
            continue
        candidate = materialize(rule, month)
        if candidate.duplicate_key() in seen:
            continue
        drafts.append(candidate)

    logger.debug("recurring_expanded", month=month, new_transactions=len(drafts))
    return RecurringExpansion(month=month, drafts=drafts)
