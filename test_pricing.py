"""Tests for the price/discount calculator."""

from decimal import Decimal

import pytest

from pricing.calculator import (
    adjust,
    amounts_match,
    format_quantity,
    is_negligible,
    parse_discount,
    parse_numeric,
    quantize_money,
)


class TestParseNumeric:
    """Cell cleaning."""

    @pytest.mark.parametrize("raw,expected", [
        ("1,250.50", Decimal("1250.50")),
        ("RM 12", Decimal("12")),
        ("$5.00", Decimal("5.00")),
        ("(3.50)", Decimal("-3.50")),
        (7, Decimal("7")),
        (2.5, Decimal("2.5")),
    ])
    def test_parses_noisy_cells(self, raw, expected):
        assert parse_numeric(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "n/a", "-", True])
    def test_non_numeric_coerces_to_default(self, raw):
        assert parse_numeric(raw) == Decimal("0")
        assert parse_numeric(raw, default=Decimal("1")) == Decimal("1")


class TestDiscount:
    """Discount parsing and adjustment."""

    def test_percentage_is_fraction_of_line_total(self):
        assert parse_discount("10%", Decimal("5.00"), Decimal("10")) == Decimal("5")

    def test_absolute_amount_passes_through(self):
        assert parse_discount("5.00", Decimal("5.00"), Decimal("10")) == Decimal("5.00")

    def test_missing_discount_is_zero(self):
        assert parse_discount(None, Decimal("5"), Decimal("1")) == Decimal("0")

    def test_books_example(self):
        """10 x 5.00 with 10% off: 4.50 per unit, 45.00 total."""
        price = adjust(Decimal("5.00"), Decimal("10"), "10%")
        assert price.discount_applied is True
        assert price.unit_price == Decimal("4.5")
        assert price.line_total == Decimal("45")
        assert price.total_before == Decimal("50")
        assert price.total_after == Decimal("45")
        assert price.discount_amount == Decimal("5")

    def test_percentage_and_absolute_are_equivalent(self):
        by_percent = adjust(Decimal("19.99"), Decimal("3"), "20%")
        by_amount = adjust(Decimal("19.99"), Decimal("3"), by_percent.discount_amount)
        assert by_percent.unit_price == by_amount.unit_price
        assert by_percent.line_total == by_amount.line_total

    def test_line_total_is_quantity_times_unit_price(self):
        price = adjust(Decimal("3.33"), Decimal("7"), Decimal("1.11"))
        assert price.line_total == Decimal("7") * price.unit_price

    def test_negligible_discount_is_ignored(self):
        price = adjust(Decimal("10"), Decimal("2"), Decimal("0.005"))
        assert price.discount_applied is False
        assert price.discount_amount == Decimal("0")
        assert price.unit_price == Decimal("10")

    def test_discount_larger_than_total_clamps_to_zero(self):
        price = adjust(Decimal("5"), Decimal("2"), Decimal("25"))
        assert price.unit_price == Decimal("0")
        assert price.line_total == Decimal("0")

    def test_zero_quantity_leaves_price_unchanged(self):
        price = adjust(Decimal("5"), Decimal("0"), "10%")
        assert price.discount_applied is False
        assert price.line_total == Decimal("0")


class TestHelpers:

    def test_is_negligible(self):
        assert is_negligible(None)
        assert is_negligible(Decimal("0.009"))
        assert not is_negligible(Decimal("0.01"))
        assert not is_negligible(Decimal("-0.5"))

    def test_amounts_match_within_a_cent(self):
        assert amounts_match(Decimal("45.00"), Decimal("45.01"))
        assert not amounts_match(Decimal("45.00"), Decimal("45.02"))
        assert not amounts_match(None, Decimal("1"))

    def test_quantize_money(self):
        assert quantize_money(Decimal("4.445")) == Decimal("4.45")
        assert quantize_money(None) is None

    def test_format_quantity(self):
        assert format_quantity(Decimal("10")) == "10"
        assert format_quantity(Decimal("10.000")) == "10"
        assert format_quantity(Decimal("2.50")) == "2.5"
