# Overview: Decimal money helpers; amounts are never held as binary floats.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

TWOPLACES = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest amount a Numeric(12, 2) column holds
MAX_AMOUNT = Decimal("9999999999.99")


def to_money(value) -> Decimal:
    """
    Coerce a stored or computed value to a 2dp Decimal.

    Floats are converted through their repr so 0.1 stays 0.10 instead of
    0.1000000000000000055511151231257827.
    """
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, float):
        d = Decimal(repr(value))
    else:
        try:
            d = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {value!r}")
    if not d.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    try:
        return d.quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # more digits than the decimal context holds, e.g. "1e30"
        raise ValueError(f"Invalid amount: {value!r}")


def money_str(value) -> str | None:
    if value is None:
        return None
    return str(to_money(value))
