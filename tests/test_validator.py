"""Tests for form validation."""

from decimal import Decimal

import pytest

from household_ledger.models import Person, TransactionKind
from household_ledger.validation import CLEAR_ALL_CONFIRMATION


class TestTransactionForm:
    """Tests for manual transaction entry."""

    def test_valid_form(self, validator):
        """Test a complete form yields a draft."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03",
            "description": " Groceries ",
            "amount": "250.40",
            "category": "Food",
            "kind": "expense",
            "person": "wife",
        })
        assert result.is_valid
        assert result.issues == []
        assert draft.description == "Groceries"
        assert draft.amount == Decimal("250.40")
        assert draft.person == Person.PARTNER_B

    def test_defaults(self, validator):
        """Test that kind defaults to expense and person to joint."""
        _, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "Coffee", "amount": 3,
        })
        assert draft.kind == TransactionKind.EXPENSE
        assert draft.person == Person.JOINT
        assert draft.category == "Other"

    def test_blank_description(self, validator):
        """Test that a blank description is an error and no draft is made."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "   ", "amount": "10",
        })
        assert draft is None
        assert result.has_errors
        assert result.issues[0].field == "description"

    def test_non_numeric_amount(self, validator):
        """Test that an amount that is not a number is an error."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "Coffee", "amount": "three",
        })
        assert draft is None
        assert any(i.field == "amount" and i.issue_type == "invalid_format" for i in result.issues)

    def test_negative_amount(self, validator):
        """Test that direction never comes from a sign."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "Refund", "amount": "-5",
        })
        assert draft is None
        assert result.issues[0].issue_type == "out_of_range"

    def test_bad_date(self, validator):
        """Test that an impossible date is an error."""
        result, draft = validator.validate_transaction({
            "date": "2024-02-30", "description": "Coffee", "amount": "1",
        })
        assert draft is None
        assert result.issues[0].field == "date"

    def test_unknown_category_is_warning(self, validator):
        """Test that an unlisted category only warns."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "Yarn", "amount": "8", "category": "Hobbies",
        })
        assert draft is not None
        assert draft.category == "Hobbies"
        assert result.is_valid
        assert result.issues[0].severity == "warning"

    def test_bad_kind_and_person(self, validator):
        """Test that unknown kind and person are errors."""
        result, draft = validator.validate_transaction({
            "date": "2024-12-03", "description": "X", "amount": "1", "kind": "gift", "person": "cat",
        })
        assert draft is None
        assert result.error_count == 2
        assert "Unknown person 'cat'" in result.summary()


class TestOtherForms:
    """Tests for budget, balance sheet and recurring rule forms."""

    def test_budget_month_is_normalized(self, validator):
        """Test that a storage date is accepted as the month."""
        result, draft = validator.validate_budget({
            "category": "Food", "amount": "300", "month": "2024-12-01",
        })
        assert result.is_valid
        assert draft.month == "2024-12"

    def test_budget_requires_month(self, validator):
        """Test missing and malformed months."""
        result, draft = validator.validate_budget({"category": "Food", "amount": "300"})
        assert draft is None
        assert result.issues[0].issue_type == "missing"

        result, draft = validator.validate_budget({"category": "Food", "amount": "300", "month": "Dec"})
        assert draft is None
        assert result.issues[0].issue_type == "invalid_format"

    def test_asset_and_liability(self, validator):
        """Test name and value are required."""
        result, draft = validator.validate_asset({"name": "Car", "value": "9000", "person": "you"})
        assert result.is_valid
        assert draft.value == Decimal("9000")

        result, draft = validator.validate_liability({"name": "", "value": ""})
        assert draft is None
        assert result.error_count == 2

    def test_recurring_day_defaults(self, validator):
        """Test that a blank or unreadable day becomes 1."""
        _, draft = validator.validate_recurring_rule({"description": "Rent", "amount": "900"})
        assert draft.day_of_month == 1
        assert draft.active is True

        _, draft = validator.validate_recurring_rule({
            "description": "Rent", "amount": "900", "day_of_month": "soon",
        })
        assert draft.day_of_month == 1

    @pytest.mark.parametrize("raw", ["false", "0", "off", False])
    def test_recurring_paused_flag(self, validator, raw):
        """Test that a paused rule submitted as form text stays paused."""
        _, draft = validator.validate_recurring_rule({
            "description": "Rent", "amount": "900", "active": raw,
        })
        assert draft.active is False

    @pytest.mark.parametrize("raw", ["true", "1", "on", "", None])
    def test_recurring_active_flag(self, validator, raw):
        """Test the values that keep a rule active."""
        _, draft = validator.validate_recurring_rule({
            "description": "Rent", "amount": "900", "active": raw,
        })
        assert draft.active is True

    def test_recurring_unreadable_flag(self, validator):
        """Test that an unreadable active flag is an error on that field."""
        result, draft = validator.validate_recurring_rule({
            "description": "Rent", "amount": "900", "active": "sometimes",
        })
        assert draft is None
        assert result.issues[0].field == "active"

    def test_recurring_day_out_of_range_warns(self, validator):
        """Test that day 35 is kept with a warning."""
        result, draft = validator.validate_recurring_rule({
            "description": "Rent", "amount": "900", "day_of_month": "35", "category": "Housing",
        })
        assert draft.day_of_month == 35
        assert result.is_valid
        assert result.issues[0].field == "day_of_month"

    def test_clear_all_confirmation(self, validator):
        """Test the confirmation phrase must match."""
        assert validator.validate_clear_all(CLEAR_ALL_CONFIRMATION).is_valid
        assert validator.validate_clear_all("delete all").has_errors
        assert validator.validate_clear_all(None).has_errors

    def test_csv_upload_size(self, validator):
        """Test the upload size limit."""
        assert validator.validate_csv_upload(1024, 2048).is_valid
        assert validator.validate_csv_upload(4096, 2048).has_errors
