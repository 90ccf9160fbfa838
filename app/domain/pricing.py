"""Money helpers: line totals and the 50% deposit split."""
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal
from typing import Iterable

CENT = Decimal("0.01")
DEPOSIT_RATE = Decimal("0.5")
# Largest value a NUMERIC(10,2) column holds
MAX_ORDER_TOTAL = Decimal("99999999.99")


@dataclass(frozen=True)
class DepositSplit:
    total: Decimal
    deposit: Decimal
    remaining: Decimal


@dataclass(frozen=True)
class PricedLine:
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


def to_money(value) -> Decimal:
    """Coerce to a Decimal rounded to cents (banker's rounding)."""
    if not isinstance(value, Decimal):
        # str() keeps floats like 0.1 from dragging binary noise into the Decimal
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_EVEN)


def calculate_deposit(total_amount) -> DepositSplit:
    """
    Split a total into the deposit charged up front and the remainder due later.

    deposit = round(total * 0.5, 2) and remaining = total - deposit, so the two
    parts always add back up to the rounded total exactly.
    """
    total = to_money(total_amount)
    if total < 0:
        raise ValueError(f"total_amount must be non-negative, got {total}")
    deposit = (total * DEPOSIT_RATE).quantize(CENT, rounding=ROUND_HALF_EVEN)
    return DepositSplit(total=total, deposit=deposit, remaining=total - deposit)


def price_lines(items: Iterable) -> list[PricedLine]:
    """Snapshot each cart line with its computed total. Items need product_name, quantity, unit_price."""
    lines = []
    for item in items:
        unit_price = to_money(item.unit_price)
        lines.append(
            PricedLine(
                product_name=item.product_name.strip(),
                quantity=int(item.quantity),
                unit_price=unit_price,
                total_price=to_money(unit_price * item.quantity),
            )
        )
    return lines


def to_minor_units(amount: Decimal) -> int:
    """Convert a dollar amount to integer cents for the payment processor."""
    return int((to_money(amount) * 100).to_integral_value(rounding=ROUND_HALF_EVEN))
