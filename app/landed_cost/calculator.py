from __future__ import annotations

import math
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

# keeps every intermediate well inside Decimal's 28-digit context
MAX_AMOUNT = 1_000_000_000_000
MAX_QUANTITY = 1_000_000


def _d(x) -> Decimal:
    return Decimal(str(x))


def _round(x: Decimal) -> float:
    return float(x.quantize(CENT, rounding=ROUND_HALF_UP))


def landed_cost(
    *,
    product_value: float,
    quantity: int,
    shipping_cost: float,
    insurance: float,
    duty_rate: float,
    vat_rate: float,
) -> dict:
    """
    subtotal = value * qty
    duty     = subtotal * duty_rate
    vat      = (subtotal + duty + shipping) * vat_rate
    total    = subtotal + duty + vat + shipping + insurance
    margin   = (total - subtotal) / subtotal * 100
    Rates are fractions (0.12 == 12%).
    """
    amounts = (product_value, shipping_cost, insurance)
    if not all(math.isfinite(a) for a in amounts):
        raise ValueError("Amounts must be finite numbers")
    if not (math.isfinite(duty_rate) and math.isfinite(vat_rate)) or duty_rate < 0 or vat_rate < 0:
        raise ValueError("Invalid duty or VAT rate")
    if any(a < 0 for a in amounts):
        raise ValueError("Amounts cannot be negative")
    if any(a > MAX_AMOUNT for a in amounts):
        raise ValueError(f"Amounts cannot exceed {MAX_AMOUNT}")
    if quantity < 1:
        raise ValueError("Quantity must be at least 1")
    if quantity > MAX_QUANTITY:
        raise ValueError(f"Quantity cannot exceed {MAX_QUANTITY}")
    if product_value == 0:
        raise ValueError("Product value must be greater than 0")

    subtotal = _d(product_value) * quantity
    duty = subtotal * _d(duty_rate)
    vat = (subtotal + duty + _d(shipping_cost)) * _d(vat_rate)
    total = subtotal + duty + vat + _d(shipping_cost) + _d(insurance)
    margin = (total - subtotal) / subtotal * 100

    return {
        "subtotal": _round(subtotal),
        "dutyRate": _round(_d(duty_rate) * 100),
        "dutyAmount": _round(duty),
        "vatRate": _round(_d(vat_rate) * 100),
        "vatAmount": _round(vat),
        "shippingCost": _round(_d(shipping_cost)),
        "insurance": _round(_d(insurance)),
        "totalLandedCost": _round(total),
        "margin": _round(margin),
    }
