"""Order pricing rules.

Amounts are computed with ``Decimal`` and rounded half-up to cents; each
component is rounded before the total is summed, so the stored total always
equals the sum of the stored components.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

TAX_RATE = Decimal("0.08")
FREE_SHIPPING_THRESHOLD = Decimal("50.00")
FLAT_SHIPPING = Decimal("9.99")
MAX_LINE_QUANTITY = 10

_CENT = Decimal("0.01")


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as "0.1" rather than its binary expansion
    return Decimal(str(value))


def round2(value) -> Decimal:
    return to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_cents(value) -> int:
    return int(round2(value) * 100)


@dataclass(frozen=True)
class CartTotals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    def as_floats(self) -> dict[str, float]:
        return {
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "shipping": float(self.shipping),
            "total": float(self.total),
        }


def shipping_for(subtotal) -> Decimal:
    return Decimal("0.00") if round2(subtotal) >= FREE_SHIPPING_THRESHOLD else FLAT_SHIPPING


def compute_totals(lines) -> CartTotals:
    """Price ``(unit_price, quantity)`` pairs."""
    raw_subtotal = sum((to_decimal(price) * quantity for price, quantity in lines), Decimal("0"))

    subtotal = round2(raw_subtotal)
    tax = round2(raw_subtotal * TAX_RATE)
    shipping = round2(shipping_for(subtotal))

    return CartTotals(
        subtotal=subtotal,
        tax=tax,
        shipping=shipping,
        total=round2(subtotal + tax + shipping),
    )


def totals_are_consistent(subtotal, tax, shipping, total) -> bool:
    return round2(total) == round2(round2(subtotal) + round2(tax) + round2(shipping))
