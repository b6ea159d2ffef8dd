# Overview: Input coercion for ledger operations; raises ValidationFailed on bad input.

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from .errors import ValidationFailed
from .models.sales import SALE_TYPES
from .money import MAX_AMOUNT, ZERO, to_money


@dataclass(frozen=True)
class SaleItemInput:
    """One requested sale line, already coerced."""
    sku_id: int
    product_id: int | None
    price: Decimal
    quantity: int

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """
    Strict integer coercion: rejects bools, floats, decimals and
    scientific notation instead of truncating them.
    """
    if value is None:
        raise ValidationFailed(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationFailed(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationFailed(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationFailed(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationFailed(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationFailed(f"{field} must be an integer")
    elif isinstance(value, float):
        raise ValidationFailed(f"{field} must be an integer, not a decimal")
    else:
        raise ValidationFailed(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationFailed(f"{field} must be >= {minimum}")
    return result


def parse_id(value: Any, field: str) -> int:
    return parse_int(value, field, minimum=1)


def parse_optional_id(value: Any, field: str) -> int | None:
    if value is None or value == "":
        return None
    return parse_id(value, field)


def parse_amount(value: Any, field: str) -> Decimal:
    """Non-negative 2dp money amount. Missing/blank counts as zero."""
    if value is None or value == "":
        return ZERO
    if isinstance(value, bool):
        raise ValidationFailed(f"{field} must be a number")
    try:
        amount = to_money(value)
    except ValueError:
        raise ValidationFailed(f"{field} must be a number")
    if amount < 0:
        raise ValidationFailed(f"{field} must be >= 0")
    if amount > MAX_AMOUNT:
        raise ValidationFailed(f"{field} cannot exceed {MAX_AMOUNT}")
    return amount


def parse_sale_type(value: Any) -> str:
    if not value:
        raise ValidationFailed("Type is required")
    sale_type = str(value).strip().lower()
    if sale_type not in SALE_TYPES:
        raise ValidationFailed(f"Type must be one of: {', '.join(SALE_TYPES)}")
    return sale_type


def parse_sale_items(raw: Any) -> list[SaleItemInput]:
    """
    Coerce the items list of a create/update sale request.

    Zero quantities pass here; the stock reservation
    rejects them with InvalidQuantity.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) == 0:
        raise ValidationFailed("Items are required")

    items: list[SaleItemInput] = []
    for index, entry in enumerate(raw):
        if isinstance(entry, SaleItemInput):
            items.append(entry)
            continue
        if not isinstance(entry, dict):
            raise ValidationFailed(f"items[{index}] must be an object")
        if entry.get("price") is None:
            raise ValidationFailed(f"items[{index}].price is required")
        items.append(SaleItemInput(
            sku_id=parse_id(entry.get("sku_id"), f"items[{index}].sku_id"),
            product_id=parse_optional_id(entry.get("product_id"), f"items[{index}].product_id"),
            price=parse_amount(entry.get("price"), f"items[{index}].price"),
            quantity=parse_int(entry.get("quantity"), f"items[{index}].quantity", minimum=0),
        ))
    return items


def sale_total(items: Iterable[SaleItemInput]) -> Decimal:
    return to_money(sum((item.line_total for item in items), ZERO))
