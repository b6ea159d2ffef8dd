"""
Debt Service - store credit and its repayments

WHY: Credit extended to a customer is money leaving the account; its
repayments are money coming back. Both use the split cash + digital model,
so every operation moves cash_balance and balance independently.

Invariants:
- amount_taken = cash_amount + digital_amount
- remaining_amount = amount_taken - SUM(payments.amount_paid)
- status == "returned" iff remaining_amount <= 0
- a payment never takes remaining_amount below zero

Debt and payment operations run DEBT_RETRY_ATTEMPTS times at most
(1 by default: a write conflict surfaces immediately).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from flask import current_app
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..errors import Conflict, NotFound, ValidationFailed
from ..extensions import db
from ..models import Debt, DebtPayment
from ..models.debts import DEBT_STATUS_PARTIALLY_RETURNED, DEBT_STATUS_RETURNED, DEBT_STATUS_TAKEN
from ..money import to_money
from ..time_utils import parse_iso_datetime, utcnow
from ..validation import parse_amount, parse_id
from .concurrency import lock_for_update, run_in_transaction
from .reconciler import SplitAmount, load_account, reconcile_debt, reconcile_payment

EDIT_RULE_REMAINING = "remaining"
EDIT_RULE_AMOUNT_TAKEN = "amount_taken"


def _debt_attempts() -> int:
    return current_app.config["DEBT_RETRY_ATTEMPTS"]


def status_for_remaining(remaining: Decimal) -> str:
    return DEBT_STATUS_RETURNED if remaining <= 0 else DEBT_STATUS_PARTIALLY_RETURNED


def _split(cash_amount: Any, digital_amount: Any) -> SplitAmount:
    return SplitAmount(
        parse_amount(cash_amount, "cash_amount"),
        parse_amount(digital_amount, "digital_amount"),
    )


def _load_debt(session: Session, debt_id: int) -> Debt:
    debt = lock_for_update(session.query(Debt).filter_by(id=debt_id)).first()
    if not debt:
        raise NotFound("Debt not found", details={"debt_id": debt_id})
    return debt


def _load_payment(session: Session, payment_id: int) -> DebtPayment:
    payment = lock_for_update(session.query(DebtPayment).filter_by(id=payment_id)).first()
    if not payment:
        raise NotFound("Debt payment not found", details={"payment_id": payment_id})
    return payment


def _paid_total(session: Session, debt_id: int) -> Decimal:
    total = session.query(
        func.coalesce(func.sum(DebtPayment.amount_paid), 0)
    ).filter(DebtPayment.debt_id == debt_id).scalar()
    return to_money(total)


# =============================================================================
# DEBTS
# =============================================================================

def create_debt(
    account_id: Any,
    cash_amount: Any,
    digital_amount: Any,
    details: str | None = None,
    taker_name: str | None = None,
    user_id: int | None = None,
) -> Debt:
    """Record credit given out of an account; both parts leave the account."""
    amounts = _split(cash_amount, digital_amount)
    if amounts.total <= 0:
        raise ValidationFailed("Total debt amount must be greater than zero")
    if not account_id:
        raise ValidationFailed("Account ID is required")
    account_id = parse_id(account_id, "account_id")

    def _op(session: Session) -> Debt:
        load_account(session, account_id)

        debt = Debt(
            account_id=account_id,
            user_id=user_id,
            taker_name=taker_name,
            details=details,
            cash_amount=amounts.cash,
            digital_amount=amounts.digital,
            amount_taken=amounts.total,
            remaining_amount=amounts.total,
            status=DEBT_STATUS_TAKEN,
        )
        session.add(debt)
        session.flush()

        reconcile_debt(session, account_id, None, amounts)
        return debt

    return run_in_transaction(_op, attempts=_debt_attempts(), label="create debt")


def update_debt(
    debt_id: int,
    cash_amount: Any,
    digital_amount: Any,
    details: str | None = None,
    taker_name: str | None = None,
    user_id: int | None = None,
) -> Debt:
    """
    Edit a debt's amounts and descriptive fields.

    The account moves by the per-field difference between the old and new
    split. Status and remaining_amount follow DEBT_EDIT_STATUS_RULE:

    "remaining"     remaining = amount_taken - paid so far (the new total may
                    not drop below what was already paid); status from
                    remaining, "taken" while nothing has been paid.
    "amount_taken"  legacy rule: status is "partially_returned" whenever the
                    new total is positive, remaining_amount is left as is.
    """
    amounts = _split(cash_amount, digital_amount)
    if amounts.total <= 0:
        raise ValidationFailed("Total debt amount must be greater than zero")
    rule = current_app.config["DEBT_EDIT_STATUS_RULE"]
    if rule not in (EDIT_RULE_REMAINING, EDIT_RULE_AMOUNT_TAKEN):
        raise ValueError(f"Unknown DEBT_EDIT_STATUS_RULE: {rule!r}")

    def _op(session: Session) -> Debt:
        debt = _load_debt(session, debt_id)
        old_amounts = SplitAmount(debt.cash_amount, debt.digital_amount)

        if rule == EDIT_RULE_REMAINING:
            paid = _paid_total(session, debt.id)
            if amounts.total < paid:
                raise ValidationFailed(
                    "Total debt amount cannot be less than the amount already paid",
                    details={"amount_taken": str(amounts.total), "paid": str(paid)},
                )
            remaining = to_money(amounts.total - paid)
            if remaining <= 0:
                status = DEBT_STATUS_RETURNED
            elif paid > 0:
                status = DEBT_STATUS_PARTIALLY_RETURNED
            else:
                status = DEBT_STATUS_TAKEN
            debt.remaining_amount = remaining
        else:
            status = DEBT_STATUS_PARTIALLY_RETURNED if amounts.total > 0 else DEBT_STATUS_RETURNED

        debt.details = details
        debt.taker_name = taker_name
        debt.user_id = user_id
        debt.cash_amount = amounts.cash
        debt.digital_amount = amounts.digital
        debt.amount_taken = amounts.total
        debt.status = status

        reconcile_debt(session, debt.account_id, old_amounts, amounts)
        return debt

    return run_in_transaction(_op, attempts=_debt_attempts(), label=f"update debt {debt_id}")


def delete_debt(debt_id: int) -> None:
    """Delete a debt with no payments and give its amounts back to the account."""
    def _op(session: Session) -> None:
        debt = _load_debt(session, debt_id)

        payment_count = session.query(DebtPayment).filter_by(debt_id=debt.id).count()
        if payment_count > 0:
            raise Conflict(
                "Cannot delete debt as it is associated with payments",
                details={"debt_id": debt.id, "payments": payment_count},
            )

        reconcile_debt(session, debt.account_id, SplitAmount(debt.cash_amount, debt.digital_amount), None)
        session.delete(debt)

    run_in_transaction(_op, attempts=_debt_attempts(), label=f"delete debt {debt_id}")


def get_debt(debt_id: int) -> Debt:
    debt = db.session.get(Debt, debt_id)
    if not debt:
        raise NotFound("Debt not found", details={"debt_id": debt_id})
    return debt


def list_debts(status: str | None = None) -> list[Debt]:
    query = db.session.query(Debt)
    if status:
        query = query.filter(Debt.status == status)
    return query.order_by(Debt.created_at.desc(), Debt.id.desc()).all()


# =============================================================================
# PAYMENTS
# =============================================================================

def record_payment(
    debt_id: Any,
    cash_amount: Any,
    digital_amount: Any,
    payment_date: Any = None,
) -> DebtPayment:
    """Repay part or all of a debt; both parts come back into the account."""
    debt_id = parse_id(debt_id, "debt_id")
    amounts = _split(cash_amount, digital_amount)
    if amounts.total <= 0:
        raise ValidationFailed("Amount paid must be greater than zero")
    paid_at = _parse_payment_date(payment_date)

    def _op(session: Session) -> DebtPayment:
        debt = _load_debt(session, debt_id)
        remaining = to_money(debt.remaining_amount)

        if amounts.total > remaining:
            raise ValidationFailed(
                "Amount paid must be less than or equal to the remaining amount",
                details={"amount_paid": str(amounts.total), "remaining_amount": str(remaining)},
            )

        new_remaining = to_money(remaining - amounts.total)

        payment = DebtPayment(
            debt_id=debt.id,
            amount_paid=amounts.total,
            cash_amount=amounts.cash,
            digital_amount=amounts.digital,
            payment_date=paid_at,
        )
        session.add(payment)

        debt.remaining_amount = new_remaining
        debt.status = status_for_remaining(new_remaining)
        session.flush()

        reconcile_payment(session, debt.account_id, None, amounts)
        return payment

    return run_in_transaction(_op, attempts=_debt_attempts(), label=f"record payment on debt {debt_id}")


def update_payment(payment_id: int, cash_amount: Any, digital_amount: Any) -> DebtPayment:
    """
    Change a payment's split. The old amount is credited back to the debt
    before the new one is checked, so a payment can grow up to what the
    debt had left plus its own previous amount.
    """
    amounts = _split(cash_amount, digital_amount)
    if amounts.total <= 0:
        raise ValidationFailed("Amount paid must be greater than zero")

    def _op(session: Session) -> DebtPayment:
        payment = _load_payment(session, payment_id)
        debt = _load_debt(session, payment.debt_id)

        old_amounts = SplitAmount(payment.cash_amount, payment.digital_amount)
        available = to_money(debt.remaining_amount) + to_money(payment.amount_paid)

        if amounts.total > available:
            raise ValidationFailed(
                "Amount paid must be less than or equal to the remaining amount",
                details={"amount_paid": str(amounts.total), "remaining_amount": str(available)},
            )

        new_remaining = to_money(available - amounts.total)

        payment.amount_paid = amounts.total
        payment.cash_amount = amounts.cash
        payment.digital_amount = amounts.digital

        debt.remaining_amount = new_remaining
        debt.status = status_for_remaining(new_remaining)

        reconcile_payment(session, debt.account_id, old_amounts, amounts)
        return payment

    return run_in_transaction(_op, attempts=_debt_attempts(), label=f"update payment {payment_id}")


def delete_payment(payment_id: int) -> None:
    """Undo a payment: the debt grows back and the money leaves the account."""
    def _op(session: Session) -> None:
        payment = _load_payment(session, payment_id)
        debt = _load_debt(session, payment.debt_id)

        new_remaining = to_money(debt.remaining_amount) + to_money(payment.amount_paid)
        debt.remaining_amount = new_remaining
        debt.status = DEBT_STATUS_PARTIALLY_RETURNED if new_remaining > 0 else DEBT_STATUS_RETURNED

        reconcile_payment(session, debt.account_id, SplitAmount(payment.cash_amount, payment.digital_amount), None)
        session.delete(payment)

    run_in_transaction(_op, attempts=_debt_attempts(), label=f"delete payment {payment_id}")


def list_payments(debt_id: int) -> list[DebtPayment]:
    get_debt(debt_id)
    return (
        db.session.query(DebtPayment)
        .filter(DebtPayment.debt_id == debt_id)
        .order_by(DebtPayment.payment_date.asc(), DebtPayment.id.asc())
        .all()
    )


def _parse_payment_date(value: Any):
    if value is None or value == "":
        return utcnow()
    try:
        parsed = parse_iso_datetime(str(value))
    except ValueError:
        raise ValidationFailed("payment_date must be an ISO-8601 datetime")
    return parsed or utcnow()
