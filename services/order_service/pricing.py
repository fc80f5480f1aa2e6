"""Checkout pricing rules shared by the cart and the order creator."""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable

CENTS = Decimal("0.01")
FREE_SHIPPING_THRESHOLD = Decimal("100.00")
FLAT_SHIPPING_FEE = Decimal("9.99")
TAX_RATE = Decimal("0.08")


def to_money(value) -> Decimal:
    """Quantize anything numeric to cents, rounding half up."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def to_minor_units(amount) -> int:
    """Dollars to the integer cents the payment provider expects."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return to_money(Decimal(amount) / 100)


def shipping_for(subtotal: Decimal) -> Decimal:
    # Free at exactly the threshold; nothing to ship for an empty cart
    if subtotal <= 0 or subtotal >= FREE_SHIPPING_THRESHOLD:
        return to_money(0)
    return FLAT_SHIPPING_FEE


def tax_for(subtotal: Decimal) -> Decimal:
    return to_money(subtotal * TAX_RATE)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    shipping_cost: Decimal
    tax_amount: Decimal
    total_amount: Decimal


def line_total(unit_price, quantity: int) -> Decimal:
    return to_money(to_money(unit_price) * quantity)


def price_lines(lines: Iterable[tuple[Decimal, int]]) -> PriceBreakdown:
    """Totals for (unit_price, quantity) lines."""
    subtotal = to_money(sum((line_total(price, qty) for price, qty in lines), Decimal("0")))
    shipping = shipping_for(subtotal)
    tax = tax_for(subtotal)
    return PriceBreakdown(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax_amount=tax,
        total_amount=to_money(subtotal + shipping + tax),
    )
