"""Tests for month key helpers."""

from datetime import date

import pytest

from household_ledger.months import (
    current_month,
    day_in_month,
    month_bounds,
    month_label,
    month_of,
    month_to_storage_date,
    next_month,
    parse_day,
    previous_month,
    split_month_key,
    to_month_key,
)


class TestMonthKeys:
    """Tests for month key conversion."""

    def test_to_month_key_accepts_dates_and_keys(self):
        """Test that keys, full dates and date objects all reduce to YYYY-MM."""
        assert to_month_key("2024-12") == "2024-12"
        assert to_month_key("2024-12-01") == "2024-12"
        assert to_month_key("2024-12-01T10:00:00") == "2024-12"
        assert to_month_key(date(2024, 3, 9)) == "2024-03"

    def test_to_month_key_rejects_garbage(self):
        """Test that unreadable values give an empty key."""
        assert to_month_key("") == ""
        assert to_month_key(None) == ""
        assert to_month_key("12/01/2024") == ""
        assert to_month_key("2024-13") == ""

    def test_storage_date_round_trip(self):
        """Test that a month key is stored as the first day of the month."""
        assert month_to_storage_date("2024-12") == "2024-12-01"
        assert month_to_storage_date("2024-12-01") == "2024-12-01"
        assert month_to_storage_date("December") is None
        assert to_month_key(month_to_storage_date("2024-12")) == "2024-12"

    def test_split_month_key_invalid(self):
        """Test that an invalid key raises ValueError."""
        with pytest.raises(ValueError):
            split_month_key("2024-00")


class TestMonthArithmetic:
    """Tests for month navigation."""

    def test_previous_month_wraps_year(self):
        """Test that January's previous month is December of the prior year."""
        assert previous_month("2025-01") == "2024-12"
        assert previous_month("2024-12") == "2024-11"

    def test_next_month_wraps_year(self):
        """Test that December's next month is January of the next year."""
        assert next_month("2024-12") == "2025-01"

    def test_current_month(self):
        """Test current month from an injected day."""
        assert current_month(date(2024, 12, 31)) == "2024-12"

    def test_month_of(self):
        """Test month key of a calendar day."""
        assert month_of(date(2025, 2, 28)) == "2025-02"

    def test_month_bounds_leap_year(self):
        """Test that February bounds follow leap years."""
        assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds("2025-02") == (date(2025, 2, 1), date(2025, 2, 28))

    def test_day_in_month_clamps(self):
        """Test that out-of-range days are clamped into the month."""
        assert day_in_month("2025-02", 31) == "2025-02-28"
        assert day_in_month("2024-02", 30) == "2024-02-29"
        assert day_in_month("2024-04", 31) == "2024-04-30"
        assert day_in_month("2024-12", 0) == "2024-12-01"
        assert day_in_month("2024-12", 15) == "2024-12-15"


class TestMonthLabels:
    """Tests for display labels and date parsing."""

    def test_month_label(self):
        """Test that labels never drift into the previous month."""
        assert month_label("2024-12") == "December 2024"
        assert month_label("2025-01") == "January 2025"

    def test_month_label_passthrough(self):
        """Test that an unparsable key is returned unchanged."""
        assert month_label("someday") == "someday"
        assert month_label("") == ""

    def test_parse_day(self):
        """Test parsing of stored transaction dates."""
        assert parse_day("2024-12-03") == date(2024, 12, 3)
        assert parse_day("2024-12-03T08:30:00") == date(2024, 12, 3)
        assert parse_day("not a date") is None
        assert parse_day("") is None
