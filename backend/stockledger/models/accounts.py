from __future__ import annotations

from ..extensions import db
from ..money import money_str
from stockledger.time_utils import to_utc_z


class Account(db.Model):
    """
    A money pool with two independent sub-balances.

    balance      digital funds (mobile money, card, bank)
    cash_balance physical cash in the drawer

    Both are signed; no floor is enforced. They are only ever written by
    services.reconciler inside the same transaction that persists the
    Sell / Debt / DebtPayment change that caused the movement.
    """
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)

    # Currency / type label, e.g. "KES"
    account = db.Column(db.String(64), nullable=False)

    balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cash_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    # At most one default per deployment (assumed, not enforced here)
    is_default = db.Column(db.Boolean, nullable=False, default=False)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Account id={self.id} account={self.account!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "account": self.account,
            "balance": money_str(self.balance),
            "cash_balance": money_str(self.cash_balance),
            "is_default": self.is_default,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
