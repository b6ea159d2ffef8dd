from __future__ import annotations

from ..extensions import db
from ..money import money_str
from stockledger.time_utils import to_utc_z

DEBT_STATUS_TAKEN = "taken"
DEBT_STATUS_PARTIALLY_RETURNED = "partially_returned"
DEBT_STATUS_RETURNED = "returned"
DEBT_STATUSES = (DEBT_STATUS_TAKEN, DEBT_STATUS_PARTIALLY_RETURNED, DEBT_STATUS_RETURNED)


class Debt(db.Model):
    """
    Store credit extended to a customer (the taker).

    Money leaves the account when the debt is recorded, split across
    cash_amount (cash_balance) and digital_amount (balance). Payments bring
    it back. remaining_amount goes down with each payment; status is
    "returned" once it reaches zero.
    """
    __tablename__ = "debts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)

    # Staff member who recorded the debt (optional)
    user_id = db.Column(db.Integer, nullable=True, index=True)

    taker_name = db.Column(db.String(255), nullable=True)
    details = db.Column(db.Text, nullable=True)

    cash_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    digital_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_taken = db.Column(db.Numeric(12, 2), nullable=False)
    remaining_amount = db.Column(db.Numeric(12, 2), nullable=False)

    status = db.Column(db.String(32), nullable=False, default=DEBT_STATUS_TAKEN, index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    account = db.relationship("Account", backref=db.backref("debts", lazy=True))
    payments = db.relationship(
        "DebtPayment",
        back_populates="debt",
        cascade="all, delete-orphan",
        order_by="DebtPayment.id",
        lazy=True,
    )
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_payments: bool = False) -> dict:
        data = {
            "id": self.id,
            "account_id": self.account_id,
            "user_id": self.user_id,
            "taker_name": self.taker_name,
            "details": self.details,
            "cash_amount": money_str(self.cash_amount),
            "digital_amount": money_str(self.digital_amount),
            "amount_taken": money_str(self.amount_taken),
            "remaining_amount": money_str(self.remaining_amount),
            "status": self.status,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_payments:
            data["payments"] = [p.to_dict() for p in self.payments]
        return data


class DebtPayment(db.Model):
    """A repayment against a debt; amount_paid = cash_amount + digital_amount."""
    __tablename__ = "debt_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    debt_id = db.Column(db.Integer, db.ForeignKey("debts.id", ondelete="CASCADE"), nullable=False, index=True)

    amount_paid = db.Column(db.Numeric(12, 2), nullable=False)
    cash_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    digital_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    debt = db.relationship("Debt", back_populates="payments")
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "debt_id": self.debt_id,
            "amount_paid": money_str(self.amount_paid),
            "cash_amount": money_str(self.cash_amount),
            "digital_amount": money_str(self.digital_amount),
            "payment_date": to_utc_z(self.payment_date),
            "version_id": self.version_id,
        }
