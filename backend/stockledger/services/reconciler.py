# Overview: Balance reconciliation; turns sale/debt/payment changes into Account balance movements.

"""
Balance Reconciler

Two money models meet an account here and are kept apart on purpose:

- SaleAmount: a sale's whole total lands on ONE field, chosen by its type
  ("cash" -> cash_balance, "digital" -> balance).
- SplitAmount: debts and debt payments carry cash and digital parts at the
  same time; each part moves its own field.

The apply_* functions are pure arithmetic on Balances. The reconcile_*
functions load the affected Account rows through the caller's session,
apply the arithmetic and leave the writes pending in that session's
transaction. They never commit.

Sign conventions:
- sale:    money comes in   (+ on create, - on delete)
- debt:    money goes out   (- on create, + on delete)
- payment: money comes back (+ on create, - on delete)

Balances may go negative; there is no overdraft policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import Account
from ..models.sales import SALE_TYPE_CASH, SALE_TYPES
from ..money import ZERO, to_money
from .concurrency import lock_for_update


@dataclass(frozen=True)
class Balances:
    balance: Decimal
    cash_balance: Decimal

    @classmethod
    def of(cls, account: Account) -> "Balances":
        return cls(to_money(account.balance), to_money(account.cash_balance))

    @property
    def combined(self) -> Decimal:
        return self.balance + self.cash_balance


@dataclass(frozen=True)
class SaleAmount:
    """A sale total attributed entirely to one balance field."""
    amount: Decimal
    type: str

    def __post_init__(self):
        if self.type not in SALE_TYPES:
            raise ValueError(f"Unknown sale type: {self.type!r}")
        object.__setattr__(self, "amount", to_money(self.amount))

    @property
    def is_cash(self) -> bool:
        return self.type == SALE_TYPE_CASH


@dataclass(frozen=True)
class SplitAmount:
    """Simultaneous cash and digital parts of a debt or payment."""
    cash: Decimal
    digital: Decimal

    def __post_init__(self):
        object.__setattr__(self, "cash", to_money(self.cash))
        object.__setattr__(self, "digital", to_money(self.digital))

    @property
    def total(self) -> Decimal:
        return self.cash + self.digital

    def minus(self, other: "SplitAmount | None") -> "SplitAmount":
        if other is None:
            return self
        return SplitAmount(self.cash - other.cash, self.digital - other.digital)


NO_SPLIT = SplitAmount(ZERO, ZERO)


def _shift_sale(balances: Balances, sale: SaleAmount, sign: int) -> Balances:
    delta = sale.amount * sign
    if sale.is_cash:
        return Balances(balances.balance, balances.cash_balance + delta)
    return Balances(balances.balance + delta, balances.cash_balance)


def apply_sale_change(balances: Balances, old: SaleAmount | None, new: SaleAmount | None) -> Balances:
    """
    New balances of ONE account after a sale moves from old to new.

    old=None is a create, new=None is a delete. Same type applies the
    difference to that field; a type change takes the old total out of the
    old field and puts the new total into the new one.
    """
    if old is not None and new is not None and old.type == new.type:
        return _shift_sale(balances, SaleAmount(new.amount - old.amount, new.type), +1)

    result = balances
    if old is not None:
        result = _shift_sale(result, old, -1)
    if new is not None:
        result = _shift_sale(result, new, +1)
    return result


def apply_debt_change(balances: Balances, old: SplitAmount | None, new: SplitAmount | None) -> Balances:
    """Debts take money out: each field moves by -(new - old)."""
    delta = (new or NO_SPLIT).minus(old)
    return Balances(balances.balance - delta.digital, balances.cash_balance - delta.cash)


def apply_payment_change(balances: Balances, old: SplitAmount | None, new: SplitAmount | None) -> Balances:
    """Payments bring money back: each field moves by +(new - old)."""
    delta = (new or NO_SPLIT).minus(old)
    return Balances(balances.balance + delta.digital, balances.cash_balance + delta.cash)


def load_account(session: Session, account_id: int) -> Account:
    account = lock_for_update(session.query(Account).filter_by(id=account_id)).first()
    if not account:
        raise NotFound(f"Account with ID {account_id} not found", details={"account_id": account_id})
    return account


def _store(account: Account, balances: Balances) -> Account:
    account.balance = to_money(balances.balance)
    account.cash_balance = to_money(balances.cash_balance)
    return account


def reconcile_sale(
    session: Session,
    *,
    old_account_id: int | None,
    old: SaleAmount | None,
    new_account_id: int | None,
    new: SaleAmount | None,
) -> list[Account]:
    """
    Move account balances for a sale create / update / delete.

    Same account: one read-modify-write. Account change: the old total
    leaves the old account and the new total lands on the new account,
    two writes in the caller's transaction.
    """
    if old is not None and new is not None and old_account_id == new_account_id:
        account = load_account(session, old_account_id)
        return [_store(account, apply_sale_change(Balances.of(account), old, new))]

    touched: list[Account] = []
    if old is not None:
        old_account = load_account(session, old_account_id)
        touched.append(_store(old_account, apply_sale_change(Balances.of(old_account), old, None)))
        session.flush()
    if new is not None:
        new_account = load_account(session, new_account_id)
        touched.append(_store(new_account, apply_sale_change(Balances.of(new_account), None, new)))
        session.flush()
    return touched


def reconcile_debt(session: Session, account_id: int, old: SplitAmount | None, new: SplitAmount | None) -> Account:
    account = load_account(session, account_id)
    return _store(account, apply_debt_change(Balances.of(account), old, new))


def reconcile_payment(session: Session, account_id: int, old: SplitAmount | None, new: SplitAmount | None) -> Account:
    account = load_account(session, account_id)
    return _store(account, apply_payment_change(Balances.of(account), old, new))
