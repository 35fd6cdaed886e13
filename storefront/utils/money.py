# storefront/utils/money.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

Money = Decimal
ZERO = Decimal("0")
CENT = Decimal("0.01")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x: Money) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def parse_money(value, field: str) -> Money:
    """Parse user input into a non-negative Decimal, raising ValueError with the field name."""
    try:
        amount = D(value)
    except (InvalidOperation, ValueError):
        raise ValueError(f"{field} must be numeric")
    if not amount.is_finite() or amount < 0:
        raise ValueError(f"{field} must be >= 0")
    return amount

def to_float(x) -> float:
    return float(round_money(x))
