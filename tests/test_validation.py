"""Unit tests for input typing helpers"""
import pytest
from datetime import date, datetime
from decimal import Decimal

from core.errors import ValidationError
from core.validation import (
    calendar_date, non_negative_amount, optional_text, positive_number, require_text,
)


class TestText:
    """Tests for require_text / optional_text"""

    def test_require_text_strips(self):
        assert require_text("  PLOT-001 ", "parcel_number") == "PLOT-001"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_require_text_missing(self, value):
        with pytest.raises(ValidationError) as exc:
            require_text(value, "location")
        assert exc.value.details == {"field": "location"}

    def test_optional_text(self):
        assert optional_text(None) is None
        assert optional_text("   ") is None
        assert optional_text(" north ") == "north"


class TestPositiveNumber:
    """Tests for positive_number (area sizes)"""

    @pytest.mark.parametrize("value,expected", [
        (500, 500.0),
        ("500", 500.0),
        (" 12.5 ", 12.5),
        (0.01, 0.01),
    ])
    def test_valid(self, value, expected):
        assert positive_number(value, "area_size") == expected

    @pytest.mark.parametrize("value", [None, "", 0, -1, "-3", "abc", float("nan"), float("inf"), "inf", True])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            positive_number(value, "area_size")


class TestAmount:
    """Tests for non_negative_amount (sale amounts)"""

    def test_optional(self):
        assert non_negative_amount(None, "sale_amount") is None
        assert non_negative_amount("", "sale_amount") is None

    def test_rounds_to_cents(self):
        assert non_negative_amount("1000", "sale_amount") == Decimal("1000.00")
        assert non_negative_amount("12.345", "sale_amount") == Decimal("12.34")   # banker's rounding
        assert non_negative_amount(0, "sale_amount") == Decimal("0.00")

    @pytest.mark.parametrize("value", [-1, "-0.01", "ten", "NaN", "Infinity", False])
    def test_invalid(self, value):
        with pytest.raises(ValidationError) as exc:
            non_negative_amount(value, "sale_amount")
        assert exc.value.details["field"] == "sale_amount"


class TestCalendarDate:
    """Tests for calendar_date"""

    def test_parses_iso(self):
        assert calendar_date("2024-03-01", "transfer_date") == date(2024, 3, 1)

    def test_passes_dates_through(self):
        assert calendar_date(date(2024, 3, 1), "transfer_date") == date(2024, 3, 1)
        assert calendar_date(datetime(2024, 3, 1, 15, 30), "transfer_date") == date(2024, 3, 1)

    def test_missing_is_none(self):
        assert calendar_date(None, "transfer_date") is None
        assert calendar_date(" ", "transfer_date") is None

    @pytest.mark.parametrize("value", ["01/03/2024", "2024-13-01", "yesterday"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            calendar_date(value, "transfer_date")
