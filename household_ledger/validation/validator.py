"""
Form Validation

DESIGN DECISION: Raw form fields are checked before anything touches
storage or local state. A form either yields a validated draft or a
``ValidationResult`` listing what is wrong; it never yields both.

Two levels of issue:
- errors block the command (blank description, amount that is not a
  number, mismatched confirmation)
- warnings are reported but do not block (category outside the configured
  list, day of month that expansion will clamp)

IMPORTANT: Validation NEVER silently fixes a blocking issue. The only
defaults applied are the documented ones (category "Other", person
"joint", day of month 1).
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from household_ledger.config import get_settings
from household_ledger.models.ledger import (
    AssetDraft,
    BudgetDraft,
    LiabilityDraft,
    Person,
    RecurringRuleDraft,
    TransactionDraft,
    TransactionKind,
)
from household_ledger.models.results import ValidationIssue, ValidationResult
from household_ledger.months import STORAGE_DATE_RE, parse_day, to_month_key

CLEAR_ALL_CONFIRMATION = "DELETE ALL"


def _text(form: Mapping[str, Any], field: str) -> str:
    value = form.get(field)
    return "" if value is None else str(value).strip()


def _parse_decimal(value: Any) -> Optional[Decimal]:
    """Finite decimal from a form value, or None."""
    if value is None or str(value).strip() == "":
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _parse_day_of_month(value: Any) -> int:
    try:
        return int(str(value).strip()) or 1
    except (TypeError, ValueError):
        return 1


class FormValidator:
    """
    Validates raw form input for every entity the household records.

    Each ``validate_*`` method returns ``(result, draft)``. ``draft`` is None
    whenever ``result`` has errors.
    """

    def __init__(self, categories: Optional[list[str]] = None):
        """
        Initialize validator.

        Args:
            categories: Known spending categories. Defaults to the
                        configured list.
        """
        self._categories = categories if categories is not None else get_settings().ledger.categories_list

    # =========================================================================
    # SHARED CHECKS
    # =========================================================================

    def _require_text(self, form, field: str, label: str, issues: list[ValidationIssue]) -> str:
        value = _text(form, field)
        if not value:
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
                severity="error",
            ))
        return value

    def _require_amount(self, form, field: str, label: str, issues: list[ValidationIssue]) -> Optional[Decimal]:
        raw = form.get(field)
        if raw is None or str(raw).strip() == "":
            issues.append(ValidationIssue(
                field=field,
                issue_type="missing",
                message=f"{label} is required",
                severity="error",
            ))
            return None

        amount = _parse_decimal(raw)
        if amount is None:
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_format",
                message=f"{label} must be a valid number",
                severity="error",
            ))
            return None

        if amount < 0:
            issues.append(ValidationIssue(
                field=field,
                issue_type="out_of_range",
                message=f"{label} must not be negative",
                severity="error",
            ))
            return None

        return amount

    def _person(self, form, issues: list[ValidationIssue]) -> Person:
        value = _text(form, "person").lower() or Person.JOINT.value
        try:
            return Person(value)
        except ValueError:
            issues.append(ValidationIssue(
                field="person",
                issue_type="invalid_value",
                message=f"Unknown person '{value}'",
                severity="error",
            ))
            return Person.JOINT

    def _kind(self, form, default: TransactionKind, issues: list[ValidationIssue]) -> TransactionKind:
        value = _text(form, "kind").lower() or default.value
        try:
            return TransactionKind(value)
        except ValueError:
            issues.append(ValidationIssue(
                field="kind",
                issue_type="invalid_value",
                message="Type must be income or expense",
                severity="error",
            ))
            return default

    def _category(self, form, issues: list[ValidationIssue]) -> str:
        category = _text(form, "category") or "Other"
        if self._categories and category not in self._categories:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"Category '{category}' is not in the configured list",
                severity="warning",
            ))
        return category

    @staticmethod
    def _result(form_name: str, issues: list[ValidationIssue]) -> ValidationResult:
        return ValidationResult(form=form_name, issues=issues)

    @staticmethod
    def _build(form_name: str, model, data: dict, issues: list[ValidationIssue]):
        """Construct the draft, turning any model-level rejection into issues."""
        try:
            return model(**data)
        except ValidationError as e:
            for error in e.errors():
                issues.append(ValidationIssue(
                    field=".".join(str(part) for part in error["loc"]) or form_name,
                    issue_type="invalid_value",
                    message=error["msg"],
                    severity="error",
                ))
            return None

    def _finish(self, form_name: str, model, data: dict, issues: list[ValidationIssue]):
        if any(issue.severity == "error" for issue in issues):
            return self._result(form_name, issues), None
        draft = self._build(form_name, model, data, issues)
        return self._result(form_name, issues), draft

    # =========================================================================
    # FORMS
    # =========================================================================

    def validate_transaction(
        self,
        form: Mapping[str, Any],
    ) -> tuple[ValidationResult, Optional[TransactionDraft]]:
        """
        Manual transaction entry.

        Requires a description, a non-negative amount and a YYYY-MM-DD date.
        """
        issues: list[ValidationIssue] = []

        description = self._require_text(form, "description", "Description", issues)
        amount = self._require_amount(form, "amount", "Amount", issues)

        day = _text(form, "date")
        if not day:
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Date is required",
                severity="error",
            ))
        elif not STORAGE_DATE_RE.match(day) or parse_day(day) is None:
            issues.append(ValidationIssue(
                field="date",
                issue_type="invalid_format",
                message=f"Date '{day}' is not a valid YYYY-MM-DD date",
                severity="error",
            ))

        data = {
            "date": day,
            "description": description,
            "category": self._category(form, issues),
            "amount": amount,
            "kind": self._kind(form, TransactionKind.EXPENSE, issues),
            "person": self._person(form, issues),
        }
        return self._finish("transaction", TransactionDraft, data, issues)

    def validate_budget(
        self,
        form: Mapping[str, Any],
    ) -> tuple[ValidationResult, Optional[BudgetDraft]]:
        """Budget entry: category, amount and month are all required."""
        issues: list[ValidationIssue] = []

        category = self._require_text(form, "category", "Category", issues)
        amount = self._require_amount(form, "amount", "Amount", issues)

        raw_month = _text(form, "month")
        month = to_month_key(raw_month)
        if not raw_month:
            issues.append(ValidationIssue(
                field="month",
                issue_type="missing",
                message="Month is required",
                severity="error",
            ))
        elif not month:
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_format",
                message=f"Month '{raw_month}' is not a valid YYYY-MM month",
                severity="error",
            ))

        data = {
            "category": category,
            "amount": amount,
            "month": month,
            "person": self._person(form, issues),
        }
        return self._finish("budget", BudgetDraft, data, issues)

    def _validate_balance_item(self, form_name: str, model, form: Mapping[str, Any]):
        issues: list[ValidationIssue] = []
        data = {
            "name": self._require_text(form, "name", "Name", issues),
            "value": self._require_amount(form, "value", "Value", issues),
            "person": self._person(form, issues),
        }
        return self._finish(form_name, model, data, issues)

    def validate_asset(
        self,
        form: Mapping[str, Any],
    ) -> tuple[ValidationResult, Optional[AssetDraft]]:
        return self._validate_balance_item("asset", AssetDraft, form)

    def validate_liability(
        self,
        form: Mapping[str, Any],
    ) -> tuple[ValidationResult, Optional[LiabilityDraft]]:
        return self._validate_balance_item("liability", LiabilityDraft, form)

    def validate_recurring_rule(
        self,
        form: Mapping[str, Any],
    ) -> tuple[ValidationResult, Optional[RecurringRuleDraft]]:
        """
        Recurring rule entry.

        A blank or unreadable day of month becomes 1. A day outside 1-31 is
        kept and only warned about; expansion clamps it into the month.
        """
        issues: list[ValidationIssue] = []

        description = self._require_text(form, "description", "Description", issues)
        amount = self._require_amount(form, "amount", "Amount", issues)

        day_of_month = _parse_day_of_month(form.get("day_of_month"))
        if not 1 <= day_of_month <= 31:
            issues.append(ValidationIssue(
                field="day_of_month",
                issue_type="out_of_range",
                message=f"Day {day_of_month} is outside 1-31 and will be clamped",
                severity="warning",
            ))

        # None or blank means active; other values go through pydantic bool parsing
        active = form.get("active")
        data = {
            "description": description,
            "category": self._category(form, issues),
            "amount": amount,
            "kind": self._kind(form, TransactionKind.EXPENSE, issues),
            "person": self._person(form, issues),
            "day_of_month": day_of_month,
            "active": True if active in (None, "") else active,
        }
        return self._finish("recurring_rule", RecurringRuleDraft, data, issues)

    def validate_clear_all(self, confirmation: Optional[str]) -> ValidationResult:
        """Clearing all data needs the confirmation phrase typed exactly."""
        issues = []
        if (confirmation or "").strip() != CLEAR_ALL_CONFIRMATION:
            issues.append(ValidationIssue(
                field="confirmation",
                issue_type="mismatch",
                message=f"Type '{CLEAR_ALL_CONFIRMATION}' to confirm clearing all data",
                severity="error",
            ))
        return self._result("clear_all", issues)

    def validate_csv_upload(self, size_bytes: int, max_bytes: int) -> ValidationResult:
        issues = []
        if size_bytes > max_bytes:
            issues.append(ValidationIssue(
                field="file",
                issue_type="too_large",
                message=f"File is {size_bytes // 1024} KB; the limit is {max_bytes // 1024} KB",
                severity="error",
            ))
        return self._result("csv_import", issues)
