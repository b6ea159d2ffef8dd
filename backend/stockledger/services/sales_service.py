"""
Sales Service - stock + balance consistent sale processing

Each operation is one unit of work run by the transaction executor:
stock movements, the Sell row with its items and the account balance
movement commit together or not at all. Sales retry on write conflicts
(SALE_RETRY_ATTEMPTS); each retry starts again from committed state.
"""

from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy.orm import Session

from ..errors import NotFound, ValidationFailed
from ..extensions import db
from ..models import Sell, SellItem
from ..money import ZERO
from ..validation import SaleItemInput, parse_id, parse_sale_items, parse_sale_type, sale_total
from .concurrency import lock_for_update, run_in_transaction
from .reconciler import SaleAmount, load_account, reconcile_sale
from .stock_service import reserve_stock, restock_sale_items


def _sale_attempts() -> int:
    return current_app.config["SALE_RETRY_ATTEMPTS"]


def _load_sell(session: Session, sale_id: int) -> Sell:
    sell = lock_for_update(session.query(Sell).filter_by(id=sale_id)).first()
    if not sell:
        raise NotFound(f"Sale with ID {sale_id} not found", details={"sale_id": sale_id})
    return sell


def _reserve_items(session: Session, items: list[SaleItemInput]) -> list[SellItem]:
    """Reserve stock for each requested line, in request order."""
    lines = []
    for item in items:
        sku = reserve_stock(session, item.sku_id, item.quantity)
        product_id = sku.variant.product_id
        if item.product_id is not None and item.product_id != product_id:
            raise ValidationFailed(
                f"SKU {sku.sku} does not belong to product {item.product_id}",
                details={"sku_id": sku.id, "product_id": item.product_id},
            )
        lines.append(SellItem(
            product_id=product_id,
            sku_id=sku.id,
            price=item.price,
            quantity=item.quantity,
        ))
    return lines


def create_sale(
    items: list[Any],
    account_id: Any,
    sale_type: Any,
    user_id: int | None = None,
    status: str | None = None,
) -> Sell:
    """
    Record a sale: take stock for every line, then credit the account's
    cash or digital balance with the total.
    """
    parsed_items = parse_sale_items(items)
    if not account_id:
        raise ValidationFailed("Account ID is required")
    account_id = parse_id(account_id, "account_id")
    sale_type = parse_sale_type(sale_type)

    def _op(session: Session) -> Sell:
        load_account(session, account_id)

        lines = _reserve_items(session, parsed_items)
        total = sale_total(parsed_items)

        sell = Sell(
            user_id=user_id,
            account_id=account_id,
            total=total,
            discount=ZERO,
            type=sale_type,
            status=status or "pending",
            items=lines,
        )
        session.add(sell)
        session.flush()

        reconcile_sale(
            session,
            old_account_id=None,
            old=None,
            new_account_id=account_id,
            new=SaleAmount(total, sale_type),
        )
        return sell

    return run_in_transaction(_op, attempts=_sale_attempts(), label="create sale")


def update_sale(
    sale_id: int,
    items: list[Any],
    account_id: Any,
    sale_type: Any,
    status: str | None = None,
) -> Sell:
    """
    Rewrite a sale's lines, account and type.

    Old lines are fully restocked before the new ones are reserved; the
    balance movement then covers the three cases (same account and type,
    same account with a type switch, different account).
    """
    parsed_items = parse_sale_items(items)
    if not account_id:
        raise ValidationFailed("Account ID is required")
    account_id = parse_id(account_id, "account_id")
    sale_type = parse_sale_type(sale_type)

    def _op(session: Session) -> Sell:
        sell = _load_sell(session, sale_id)
        old_account_id = sell.account_id
        old_amount = SaleAmount(sell.total, sell.type)

        restock_sale_items(session, sell)

        lines = _reserve_items(session, parsed_items)
        new_total = sale_total(parsed_items)

        sell.items.extend(lines)
        sell.account_id = account_id
        sell.total = new_total
        sell.discount = ZERO
        sell.type = sale_type
        if status:
            sell.status = status
        session.flush()

        reconcile_sale(
            session,
            old_account_id=old_account_id,
            old=old_amount,
            new_account_id=account_id,
            new=SaleAmount(new_total, sale_type),
        )
        return sell

    return run_in_transaction(_op, attempts=_sale_attempts(), label=f"update sale {sale_id}")


def delete_sale(sale_id: int) -> None:
    """Take the sale's total back out of its account, restock, delete."""
    def _op(session: Session) -> None:
        sell = _load_sell(session, sale_id)

        reconcile_sale(
            session,
            old_account_id=sell.account_id,
            old=SaleAmount(sell.total, sell.type),
            new_account_id=None,
            new=None,
        )

        restock_sale_items(session, sell)
        session.delete(sell)

    run_in_transaction(_op, attempts=_sale_attempts(), label=f"delete sale {sale_id}")


def get_sale(sale_id: int) -> Sell:
    sell = db.session.get(Sell, sale_id)
    if not sell:
        raise NotFound("Sell not found", details={"sale_id": sale_id})
    return sell


def list_sales(user_id: int | None = None) -> list[Sell]:
    """Sales newest first, optionally only those rung up by one user."""
    query = db.session.query(Sell)
    if user_id is not None:
        query = query.filter(Sell.user_id == user_id)
    return query.order_by(Sell.created_at.desc(), Sell.id.desc()).all()

