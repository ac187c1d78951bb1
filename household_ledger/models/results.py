"""
Result Models

What the engine hands back: budget progress, rollover-adjusted budget lines,
month groups and totals, CSV import output, recurring expansion output,
validation results and command outcomes.

DESIGN DECISION: "nothing there" is always its own value. A missing budget
is ``None``, an empty expansion has ``nothing_to_add``, a rejected command
has ``outcome == REJECTED``. None of these is ever expressed as a zero.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from household_ledger.models.ledger import (
    Budget,
    EntityKind,
    Transaction,
    TransactionDraft,
)


ZERO = Decimal("0")


# =============================================================================
# TOTALS & GROUPING
# =============================================================================

class Totals(BaseModel):
    income: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class MonthGroup(BaseModel):
    """Transactions of one calendar month with their subtotals."""
    key: str = Field(..., description="Month key, YYYY-MM")
    label: str = Field(..., description="Display label, e.g. 'December 2024'")
    items: list[Transaction] = Field(default_factory=list)
    income: Decimal = ZERO
    expenses: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expenses


class NetWorth(BaseModel):
    assets: Decimal = ZERO
    liabilities: Decimal = ZERO

    @property
    def net_worth(self) -> Decimal:
        return self.assets - self.liabilities


class Contributor(BaseModel):
    description: str
    total: Decimal


# =============================================================================
# BUDGETS
# =============================================================================

class BudgetStatus(str, Enum):
    """Colour band of a budget line, from its effective percentage."""
    ON_TRACK = "on_track"   # below 80%
    WARNING = "warning"     # 80% up to 100%
    OVER = "over"           # 100% and above


class BudgetProgress(BaseModel):
    """Spent-vs-budgeted figures for one (category, month)."""
    budget: Decimal
    spent: Decimal
    percentage: Decimal
    remaining: Decimal = Field(..., description="budget - spent, signed")
    over_by: Decimal


class BudgetLine(BaseModel):
    """
    One budget row of the viewed month, with rollover folded in.

    ``progress`` holds the raw figures. Every ``effective_*`` figure is what
    should be displayed; with rollover off they equal the raw ones.
    """
    budget: Budget
    progress: BudgetProgress
    rollover: Decimal = ZERO
    effective_budget: Decimal
    effective_percentage: Decimal
    effective_remaining: Decimal
    effective_over_by: Decimal
    status: BudgetStatus
    expanded: bool = False


class BudgetSummary(BaseModel):
    total_budget: Decimal = ZERO
    total_spent: Decimal = ZERO

    @property
    def remaining(self) -> Decimal:
        return self.total_budget - self.total_spent


# =============================================================================
# CSV IMPORT & RECURRING EXPANSION
# =============================================================================

class CsvImportResult(BaseModel):
    """Validated drafts parsed out of a CSV upload."""
    drafts: list[TransactionDraft] = Field(default_factory=list)
    skipped_rows: int = Field(default=0, ge=0)

    @property
    def count(self) -> int:
        return len(self.drafts)


class RecurringExpansion(BaseModel):
    """Transactions materialized from recurring rules for one month."""
    month: str
    drafts: list[TransactionDraft] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.drafts)

    @property
    def nothing_to_add(self) -> bool:
        return not self.drafts


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_range')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Result of validating one submitted form."""

    form: str = Field(..., description="Which form was validated")
    validated_at: datetime = Field(default_factory=datetime.utcnow)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    def summary(self) -> str:
        errors = [i.message for i in self.issues if i.severity == "error"]
        return "; ".join(errors)


# =============================================================================
# COMMAND OUTCOMES
# =============================================================================

class MutationOutcome(str, Enum):
    APPLIED = "applied"       # persisted (or local-only session) and applied locally
    REJECTED = "rejected"     # refused; nothing changed
    UNCHANGED = "unchanged"   # accepted, but there was nothing to do


class MutationResult(BaseModel):
    """Outcome of one mutating command."""
    outcome: MutationOutcome
    entity_kind: Optional[EntityKind] = None
    entity: Optional[Any] = None
    entities: list[Any] = Field(default_factory=list)
    message: str = ""
    issues: list[ValidationIssue] = Field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.outcome == MutationOutcome.APPLIED

    @classmethod
    def ok(cls, kind: Optional[EntityKind], entity: Any = None, entities: Optional[list] = None,
           message: str = "") -> "MutationResult":
        return cls(
            outcome=MutationOutcome.APPLIED,
            entity_kind=kind,
            entity=entity,
            entities=entities or [],
            message=message,
        )

    @classmethod
    def rejected(cls, kind: Optional[EntityKind], message: str,
                 issues: Optional[list[ValidationIssue]] = None) -> "MutationResult":
        return cls(
            outcome=MutationOutcome.REJECTED,
            entity_kind=kind,
            message=message,
            issues=issues or [],
        )

    @classmethod
    def unchanged(cls, kind: Optional[EntityKind], message: str) -> "MutationResult":
        return cls(outcome=MutationOutcome.UNCHANGED, entity_kind=kind, message=message)


class LoadReport(BaseModel):
    """Per-collection outcome of the initial bulk load."""
    loaded: dict[EntityKind, int] = Field(default_factory=dict)
    failures: dict[EntityKind, str] = Field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.failures


class CsvExport(BaseModel):
    """A rendered CSV download."""
    filename: str
    content: str
    count: int = Field(..., ge=0)
