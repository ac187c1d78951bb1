"""
View State Models

Everything a derived view depends on besides the raw collections: who is
selected, which date range, which table filters, which budget month, and
which budget lines are open. These used to be loose UI variables; here they
are explicit fields passed into every derivation.
"""

from datetime import date
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from household_ledger.models.ledger import Person


ALL = "all"


class DateRangePreset(str, Enum):
    """Named dashboard date ranges."""
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    THREE_MONTHS = "three-months"
    YEAR_TO_DATE = "year-to-date"
    CUSTOM = "custom"


class DateInterval(BaseModel):
    """Inclusive calendar interval."""
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class TransactionFilter(BaseModel):
    """Transactions table filters. ``all`` disables a filter."""
    category: str = Field(default=ALL)
    kind: str = Field(
        default=ALL,
        pattern="^(all|income|expense)$"
    )
    search_text: str = Field(default="")


class ExpansionState(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"
    MANUALLY_PINNED = "manually_pinned"


class BudgetLineExpansion(BaseModel):
    """
    Detail-view state of one budget line.

    Once ``pinned`` is set by a user toggle, automatic expansion leaves the
    line alone for the rest of the session.
    """
    expanded: bool = False
    pinned: bool = False
    show_all_transactions: bool = False

    @property
    def state(self) -> ExpansionState:
        if self.pinned:
            return ExpansionState.MANUALLY_PINNED
        return ExpansionState.EXPANDED if self.expanded else ExpansionState.COLLAPSED


class ViewContext(BaseModel):
    """Session view state passed into every derivation."""

    person: Person = Field(default=Person.JOINT)

    date_range: DateRangePreset = Field(default=DateRangePreset.THIS_MONTH)
    custom_start: Optional[date] = None
    custom_end: Optional[date] = None

    table_filter: TransactionFilter = Field(default_factory=TransactionFilter)

    budget_view_month: str = Field(
        default="",
        description="Month key shown on the budget tab; empty means current month"
    )
    budget_search: str = Field(default="")
    rollover_enabled: bool = Field(default=True)

    expansion: dict[UUID, BudgetLineExpansion] = Field(default_factory=dict)
