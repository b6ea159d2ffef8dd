from __future__ import annotations

from ..extensions import db
from ..money import money_str
from stockledger.time_utils import to_utc_z

SALE_TYPE_CASH = "cash"
SALE_TYPE_DIGITAL = "digital"
SALE_TYPES = (SALE_TYPE_CASH, SALE_TYPE_DIGITAL)


class Sell(db.Model):
    """
    A completed sale.

    The whole total is attributed to one field of one account: "cash" sales
    move Account.cash_balance, "digital" sales move Account.balance. There is
    no split tender on a sale (debts and debt payments are the split model).

    total always equals the sum of price * quantity over the current items.
    """
    __tablename__ = "sells"
    __table_args__ = (
        db.Index("ix_sells_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Staff member who rang the sale up
    user_id = db.Column(db.Integer, nullable=True, index=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    type = db.Column(db.String(16), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="pending")

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    account = db.relationship("Account", backref=db.backref("sells", lazy=True))
    items = db.relationship(
        "SellItem",
        back_populates="sell",
        cascade="all, delete-orphan",
        order_by="SellItem.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "account_id": self.account_id,
            "total": money_str(self.total),
            "discount": money_str(self.discount),
            "type": self.type,
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SellItem(db.Model):
    """Line item on a sale; owned by its Sell."""
    __tablename__ = "sell_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sell_id = db.Column(db.Integer, db.ForeignKey("sells.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    sku_id = db.Column(db.Integer, db.ForeignKey("skus.id"), nullable=False, index=True)

    price = db.Column(db.Numeric(12, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)

    sell = db.relationship("Sell", back_populates="items")
    sku = db.relationship("SKU")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sell_id": self.sell_id,
            "product_id": self.product_id,
            "sku_id": self.sku_id,
            "price": money_str(self.price),
            "quantity": self.quantity,
        }
