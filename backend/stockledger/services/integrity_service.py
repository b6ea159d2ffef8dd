# Overview: Read-only audit of ledger invariants across stock, sales and debts.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import SKU, Debt, DebtPayment, Product, Sell, SellItem, Variant
from ..models.debts import DEBT_STATUS_RETURNED
from ..money import to_money


def _issue(check: str, entity_type: str, entity_id: int, message: str, **extra) -> dict:
    issue = {"check": check, "entity_type": entity_type, "entity_id": entity_id, "message": message}
    issue.update(extra)
    return issue


def check_product_stock() -> list[dict]:
    """Product.stock_quantity must equal the sum over its SKUs."""
    sums = dict(
        db.session.query(Variant.product_id, func.coalesce(func.sum(SKU.stock_quantity), 0))
        .join(SKU, SKU.variant_id == Variant.id)
        .group_by(Variant.product_id)
        .all()
    )
    issues = []
    for product in db.session.query(Product).order_by(Product.id).all():
        expected = int(sums.get(product.id, 0))
        if product.stock_quantity != expected:
            issues.append(_issue(
                "product_stock", "product", product.id,
                f"Product {product.id} stock {product.stock_quantity} != SKU sum {expected}",
                recorded=product.stock_quantity, expected=expected,
            ))
    return issues


def check_sku_stock() -> list[dict]:
    issues = []
    for sku in db.session.query(SKU).filter(SKU.stock_quantity < 0).order_by(SKU.id).all():
        issues.append(_issue("sku_stock", "sku", sku.id, f"SKU {sku.sku} has negative stock {sku.stock_quantity}"))
    return issues


def check_sale_totals() -> list[dict]:
    """Sell.total must equal SUM(price * quantity) of its items."""
    issues = []
    for sell in db.session.query(Sell).order_by(Sell.id).all():
        expected = to_money(sum((to_money(i.price) * i.quantity for i in sell.items), to_money(0)))
        if to_money(sell.total) != expected:
            issues.append(_issue(
                "sale_total", "sell", sell.id,
                f"Sale {sell.id} total {to_money(sell.total)} != item sum {expected}",
                recorded=str(to_money(sell.total)), expected=str(expected),
            ))
    return issues


def check_debts() -> list[dict]:
    """Status agrees with remaining; payments never exceed what was taken."""
    paid_by_debt = dict(
        db.session.query(DebtPayment.debt_id, func.coalesce(func.sum(DebtPayment.amount_paid), 0))
        .group_by(DebtPayment.debt_id)
        .all()
    )
    issues = []
    for debt in db.session.query(Debt).order_by(Debt.id).all():
        remaining = to_money(debt.remaining_amount)
        taken = to_money(debt.amount_taken)
        paid = to_money(paid_by_debt.get(debt.id, 0))

        if (debt.status == DEBT_STATUS_RETURNED) != (remaining <= 0):
            issues.append(_issue(
                "debt_status", "debt", debt.id,
                f"Debt {debt.id} status {debt.status!r} disagrees with remaining {remaining}",
            ))
        if paid > taken:
            issues.append(_issue(
                "debt_overpaid", "debt", debt.id,
                f"Debt {debt.id} payments {paid} exceed amount taken {taken}",
            ))
        if to_money(taken - paid) != remaining:
            issues.append(_issue(
                "debt_remaining", "debt", debt.id,
                f"Debt {debt.id} remaining {remaining} != taken {taken} - paid {paid}",
            ))
    return issues


def check_ledger_integrity() -> list[dict]:
    """Run every check; an empty list means the ledger is consistent."""
    return (
        check_product_stock()
        + check_sku_stock()
        + check_sale_totals()
        + check_debts()
        + check_orphan_items()
    )


def check_orphan_items() -> list[dict]:
    """Sell items whose sale row is gone (SQLite does not enforce FK cascades)."""
    orphans = (
        db.session.query(SellItem)
        .outerjoin(Sell, SellItem.sell_id == Sell.id)
        .filter(Sell.id.is_(None))
        .order_by(SellItem.id)
        .all()
    )
    return [
        _issue("orphan_item", "sell_item", item.id, f"Sell item {item.id} references missing sale {item.sell_id}")
        for item in orphans
    ]
