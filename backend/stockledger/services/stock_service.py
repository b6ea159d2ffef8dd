# Overview: Stock adjuster; SKU stock counts and product aggregates for sale line items.

"""
Stock invariants (authoritative)

- SKU.stock_quantity is a mutable count and never goes below zero.
- Product.stock_quantity is derived: SUM(SKU.stock_quantity) over every SKU
  of every variant of the product. It is recomputed after each SKU change,
  never incremented in place.
- Every function takes the caller's session and only stages writes in it;
  the surrounding ledger transaction commits or discards them together
  with the balance movement.
- Updating a sale restocks ALL of its old lines before reserving the new
  ones, so shrinking a line or moving it to another SKU is checked against
  post-restock levels.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import InvalidQuantity, NotFound, OutOfStock
from ..models import SKU, Product, Sell, Variant
from .concurrency import lock_for_update


def _load_sku(session: Session, sku_id: int) -> SKU:
    sku = lock_for_update(session.query(SKU).filter_by(id=sku_id)).first()
    if not sku:
        raise NotFound(f"SKU with ID {sku_id} not found", details={"sku_id": sku_id})
    return sku


def recompute_product_stock(session: Session, product_id: int) -> int:
    """Set the product's aggregate stock to the sum over all its SKUs."""
    session.flush()
    total = session.query(
        func.coalesce(func.sum(SKU.stock_quantity), 0)
    ).join(
        Variant, SKU.variant_id == Variant.id
    ).filter(
        Variant.product_id == product_id
    ).scalar()
    total = int(total or 0)

    product = lock_for_update(session.query(Product).filter_by(id=product_id)).first()
    if not product:
        raise NotFound(f"Product with ID {product_id} not found", details={"product_id": product_id})
    product.stock_quantity = total
    return total


def reserve_stock(session: Session, sku_id: int, quantity: int) -> SKU:
    """Take quantity units of a SKU for a sale line."""
    sku = _load_sku(session, sku_id)

    if quantity <= 0:
        raise InvalidQuantity(
            "Quantity must be greater than 0.",
            details={"sku_id": sku_id, "requested_quantity": quantity},
        )

    details = {
        "sku_id": sku.id,
        "sku": sku.sku,
        "available": sku.stock_quantity,
        "requested_quantity": quantity,
    }
    if sku.stock_quantity == 0:
        raise OutOfStock(f"SKU {sku.sku} is out of stock.", details=details)
    if sku.stock_quantity < quantity:
        raise OutOfStock(
            f"Not enough stock for SKU {sku.sku}. Available: {sku.stock_quantity}, Requested: {quantity}.",
            details=details,
        )

    sku.stock_quantity = sku.stock_quantity - quantity
    recompute_product_stock(session, sku.variant.product_id)
    return sku


def release_stock(session: Session, sku_id: int, quantity: int) -> SKU:
    """Put quantity units of a SKU back (sale deleted or rewritten)."""
    sku = _load_sku(session, sku_id)

    if quantity <= 0:
        raise InvalidQuantity(
            f"Quantity for SKU {sku.sku} must be greater than 0.",
            details={"sku_id": sku_id, "quantity": quantity},
        )

    sku.stock_quantity = sku.stock_quantity + quantity
    recompute_product_stock(session, sku.variant.product_id)
    return sku


def restock_sale_items(session: Session, sell: Sell) -> None:
    """Release every current line of a sale and drop the lines."""
    for item in list(sell.items):
        release_stock(session, item.sku_id, item.quantity)
    sell.items.clear()
    session.flush()
