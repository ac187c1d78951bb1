"""
Core Data Models for Household Ledger

These models define the schemas for every entity the household records.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep sign out of amounts (direction lives in ``kind``)

DESIGN DECISION: Each entity has a *Draft* model (what a form, a CSV row or a
recurring rule produces, no id yet) and a persisted model that adds the id.
Edits replace the mutable fields and keep the id.
"""

from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from household_ledger.months import to_month_key


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Person(str, Enum):
    """
    Person scope of an entity.

    DESIGN DECISION: ``joint`` is inclusive. Scoping a view to one partner
    also shows the joint entries; scoping to ``joint`` shows everything.
    The values are the tokens used in storage and in CSV files.
    """
    JOINT = "joint"
    PARTNER_A = "you"
    PARTNER_B = "wife"


class TransactionKind(str, Enum):
    """Direction of a transaction. Amounts are always non-negative."""
    INCOME = "income"
    EXPENSE = "expense"


class EntityKind(str, Enum):
    """The five collections owned by a household."""
    TRANSACTION = "transactions"
    BUDGET = "budgets"
    ASSET = "assets"
    LIABILITY = "liabilities"
    RECURRING_RULE = "recurring_rules"


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionDraft(BaseModel):
    """
    A transaction that has not been persisted yet.

    ``date`` is kept in its stored text form (``YYYY-MM-DD``). Imported rows
    are not guaranteed to carry a readable date; views that need a calendar
    day parse it and skip what they cannot read.
    """

    date: str = Field(
        default="",
        description="Calendar day, YYYY-MM-DD"
    )
    description: str = Field(default="")
    category: str = Field(default="Other")
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude; direction is carried by kind"
    )
    kind: TransactionKind = Field(...)
    person: Person = Field(default=Person.JOINT)

    @property
    def signed_amount(self) -> Decimal:
        """Contribution to a net total: +amount for income, -amount for expense."""
        return self.amount if self.kind == TransactionKind.INCOME else -self.amount

    def duplicate_key(self) -> tuple:
        """Fields used to recognise an already-materialized recurring row."""
        return (self.date, self.description, self.amount, self.kind, self.person)


class Transaction(TransactionDraft):
    """A persisted transaction."""

    id: UUID = Field(
        default_factory=uuid4,
        description="Unique transaction ID"
    )
    created_by: Optional[str] = None


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetDraft(BaseModel):
    """
    A monthly budget for one category.

    ``month`` accepts either the month key or the storage date and is always
    held as the ``YYYY-MM`` key.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = Field(..., min_length=1)
    amount: Decimal = Field(..., ge=0)
    month: str = Field(..., description="Month key, YYYY-MM")
    person: Person = Field(default=Person.JOINT)

    @field_validator('month', mode='before')
    @classmethod
    def normalize_month(cls, v) -> str:
        key = to_month_key(v)
        if not key:
            raise ValueError(f"Invalid month: {v!r}. Expected YYYY-MM")
        return key


class Budget(BudgetDraft):
    """A persisted budget row."""

    id: UUID = Field(default_factory=uuid4)
    created_by: Optional[str] = None


# =============================================================================
# ASSETS & LIABILITIES
# =============================================================================

class BalanceItemDraft(BaseModel):
    """Something the household owns or owes, valued at ``value``."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=200)
    value: Decimal = Field(..., ge=0)
    person: Person = Field(default=Person.JOINT)


class AssetDraft(BalanceItemDraft):
    pass


class LiabilityDraft(BalanceItemDraft):
    pass


class Asset(AssetDraft):
    id: UUID = Field(default_factory=uuid4)
    created_by: Optional[str] = None


class Liability(LiabilityDraft):
    id: UUID = Field(default_factory=uuid4)
    created_by: Optional[str] = None


# =============================================================================
# RECURRING RULES
# =============================================================================

class RecurringRuleDraft(BaseModel):
    """
    Template for a transaction that repeats every month.

    ``day_of_month`` is kept as entered; expansion clamps it into the days
    the target month actually has.
    """

    description: str = Field(..., min_length=1)
    category: str = Field(default="Other")
    amount: Decimal = Field(..., ge=0)
    kind: TransactionKind = Field(default=TransactionKind.EXPENSE)
    person: Person = Field(default=Person.JOINT)
    day_of_month: int = Field(default=1)
    active: bool = Field(default=True)


class RecurringRule(RecurringRuleDraft):
    id: UUID = Field(default_factory=uuid4)
    created_by: Optional[str] = None


# Entity model per collection, used by the storage layer when reading rows back.
ENTITY_MODELS: dict[EntityKind, type[BaseModel]] = {
    EntityKind.TRANSACTION: Transaction,
    EntityKind.BUDGET: Budget,
    EntityKind.ASSET: Asset,
    EntityKind.LIABILITY: Liability,
    EntityKind.RECURRING_RULE: RecurringRule,
}
