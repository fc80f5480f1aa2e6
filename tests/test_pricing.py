from decimal import Decimal

import pytest

from services.order_service.pricing import (
    FLAT_SHIPPING_FEE,
    from_minor_units,
    line_total,
    price_lines,
    shipping_for,
    tax_for,
    to_minor_units,
    to_money,
)


class TestShipping:
    def test_flat_fee_below_threshold(self):
        assert shipping_for(Decimal("99.99")) == FLAT_SHIPPING_FEE

    def test_free_at_threshold(self):
        assert shipping_for(Decimal("100.00")) == Decimal("0.00")

    def test_free_above_threshold(self):
        assert shipping_for(Decimal("250.00")) == Decimal("0.00")

    def test_nothing_to_ship_for_empty_cart(self):
        assert shipping_for(Decimal("0")) == Decimal("0.00")


class TestTax:
    def test_eight_percent(self):
        assert tax_for(Decimal("110.00")) == Decimal("8.80")

    def test_rounds_half_up(self):
        # 0.08 * 10.0625 = 0.805 -> 0.81
        assert tax_for(Decimal("10.0625")) == Decimal("0.81")


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount, cents",
        [
            (Decimal("26.19"), 2619),
            (Decimal("0.01"), 1),
            (Decimal("19.995"), 2000),
            ("10", 1000),
        ],
    )
    def test_to_minor_units(self, amount, cents):
        assert to_minor_units(amount) == cents

    def test_from_minor_units(self):
        assert from_minor_units(2619) == Decimal("26.19")


def test_to_money_accepts_floats_without_binary_noise():
    assert to_money(0.1 + 0.2) == Decimal("0.30")


def test_line_total():
    assert line_total(Decimal("19.99"), 3) == Decimal("59.97")


def test_price_lines_totals_add_up():
    totals = price_lines([(Decimal("60.00"), 1), (Decimal("25.00"), 2)])

    assert totals.subtotal == Decimal("110.00")
    assert totals.shipping_cost == Decimal("0.00")
    assert totals.tax_amount == Decimal("8.80")
    assert totals.total_amount == Decimal("118.80")
    assert totals.total_amount == totals.subtotal + totals.shipping_cost + totals.tax_amount


def test_price_lines_small_order_pays_shipping():
    totals = price_lines([(Decimal("15.00"), 1)])

    assert totals.shipping_cost == Decimal("9.99")
    assert totals.tax_amount == Decimal("1.20")
    assert totals.total_amount == Decimal("26.19")


def test_price_lines_empty():
    totals = price_lines([])

    assert totals.subtotal == Decimal("0.00")
    assert totals.total_amount == Decimal("0.00")
