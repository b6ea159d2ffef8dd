"""
Debts and debt payments: split cash/digital movements and status upkeep.
"""

from decimal import Decimal

import pytest

from stockledger.errors import Conflict, NotFound, ValidationFailed
from stockledger.models import Account, Debt, DebtPayment
from stockledger.services import debt_service

from conftest import make_account


def _balances(session, account_id):
    account = session.get(Account, account_id)
    session.refresh(account)
    return account.balance, account.cash_balance


@pytest.fixture
def till(db_session):
    """Account with 500.00 digital and 200.00 cash."""
    return make_account(db_session, balance="500.00", cash_balance="200.00")


def test_debt_then_full_repayment(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20", details="2 shirts", taker_name="Wanjiru", user_id=3)

    assert debt.amount_taken == Decimal("50.00")
    assert debt.remaining_amount == Decimal("50.00")
    assert debt.status == "taken"
    assert _balances(db_session, till.id) == (Decimal("480.00"), Decimal("170.00"))

    payment = debt_service.record_payment(debt.id, "50", "0")

    assert payment.amount_paid == Decimal("50.00")
    debt = debt_service.get_debt(debt.id)
    assert debt.remaining_amount == Decimal("0.00")
    assert debt.status == "returned"
    assert _balances(db_session, till.id) == (Decimal("480.00"), Decimal("220.00"))


def test_partial_payment_sets_partially_returned(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.record_payment(debt.id, "10", "5")

    debt = debt_service.get_debt(debt.id)
    assert debt.remaining_amount == Decimal("35.00")
    assert debt.status == "partially_returned"
    assert _balances(db_session, till.id) == (Decimal("485.00"), Decimal("180.00"))


def test_overpayment_is_rejected_without_side_effects(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.record_payment(debt.id, "40", "0")

    with pytest.raises(ValidationFailed, match="less than or equal to the remaining amount"):
        debt_service.record_payment(debt.id, "5", "5.01")

    debt = debt_service.get_debt(debt.id)
    assert debt.remaining_amount == Decimal("10.00")
    assert db_session.query(DebtPayment).count() == 1
    assert _balances(db_session, till.id) == (Decimal("480.00"), Decimal("210.00"))


@pytest.mark.parametrize("cash, digital", [("0", "0"), (None, None), ("", "0")])
def test_debt_total_must_be_positive(db_session, till, cash, digital):
    with pytest.raises(ValidationFailed, match="Total debt amount must be greater than zero"):
        debt_service.create_debt(till.id, cash, digital)
    assert db_session.query(Debt).count() == 0


def test_negative_amounts_rejected(db_session, till):
    with pytest.raises(ValidationFailed, match="must be >= 0"):
        debt_service.create_debt(till.id, "-5", "20")


def test_zero_payment_rejected(db_session, till):
    debt = debt_service.create_debt(till.id, "10", "0")
    with pytest.raises(ValidationFailed, match="greater than zero"):
        debt_service.record_payment(debt.id, "0", "0")


def test_unknown_account_and_debt(db_session):
    with pytest.raises(NotFound):
        debt_service.create_debt(999, "10", "0")
    with pytest.raises(NotFound):
        debt_service.record_payment(999, "10", "0")
    with pytest.raises(NotFound):
        debt_service.list_payments(999)


def test_delete_debt_with_payments_conflicts(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.record_payment(debt.id, "5", "0")

    with pytest.raises(Conflict, match="associated with payments"):
        debt_service.delete_debt(debt.id)
    assert db_session.get(Debt, debt.id) is not None


def test_delete_debt_gives_money_back(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.delete_debt(debt.id)

    assert db_session.get(Debt, debt.id) is None
    assert _balances(db_session, till.id) == (Decimal("500.00"), Decimal("200.00"))


def test_update_debt_moves_per_field_difference(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    updated = debt_service.update_debt(debt.id, "10", "25", details="edited", taker_name="Otieno")

    assert updated.amount_taken == Decimal("35.00")
    assert updated.remaining_amount == Decimal("35.00")
    assert updated.status == "taken"
    assert updated.taker_name == "Otieno"
    assert _balances(db_session, till.id) == (Decimal("475.00"), Decimal("190.00"))


def test_update_debt_recomputes_remaining_from_payments(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.record_payment(debt.id, "20", "0")

    updated = debt_service.update_debt(debt.id, "40", "20")
    assert updated.remaining_amount == Decimal("40.00")
    assert updated.status == "partially_returned"

    updated = debt_service.update_debt(debt.id, "20", "0")
    assert updated.remaining_amount == Decimal("0.00")
    assert updated.status == "returned"


def test_update_debt_below_paid_is_rejected(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    debt_service.record_payment(debt.id, "20", "0")

    with pytest.raises(ValidationFailed, match="cannot be less than the amount already paid"):
        debt_service.update_debt(debt.id, "10", "0")


def test_legacy_edit_rule(app, db_session, till, monkeypatch):
    monkeypatch.setitem(app.config, "DEBT_EDIT_STATUS_RULE", "amount_taken")
    debt = debt_service.create_debt(till.id, "30", "20")

    updated = debt_service.update_debt(debt.id, "40", "20")

    assert updated.status == "partially_returned"
    assert updated.remaining_amount == Decimal("50.00")
    assert _balances(db_session, till.id) == (Decimal("480.00"), Decimal("160.00"))


def test_update_payment_within_remaining_plus_own_amount(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    payment = debt_service.record_payment(debt.id, "10", "0")

    updated = debt_service.update_payment(payment.id, "30", "20")

    assert updated.amount_paid == Decimal("50.00")
    debt = debt_service.get_debt(debt.id)
    assert debt.remaining_amount == Decimal("0.00")
    assert debt.status == "returned"
    assert _balances(db_session, till.id) == (Decimal("500.00"), Decimal("200.00"))

    with pytest.raises(ValidationFailed):
        debt_service.update_payment(payment.id, "30", "20.01")


def test_delete_payment_reopens_debt(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "20")
    payment = debt_service.record_payment(debt.id, "50", "0")

    debt_service.delete_payment(payment.id)

    debt = debt_service.get_debt(debt.id)
    assert debt.remaining_amount == Decimal("50.00")
    assert debt.status == "partially_returned"
    assert _balances(db_session, till.id) == (Decimal("480.00"), Decimal("170.00"))
    assert debt_service.list_payments(debt.id) == []


def test_payment_date_parsing(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "0")
    payment = debt_service.record_payment(debt.id, "5", "0", payment_date="2024-05-01T10:00:00Z")
    assert payment.to_dict()["payment_date"] == "2024-05-01T10:00:00Z"

    with pytest.raises(ValidationFailed, match="ISO-8601"):
        debt_service.record_payment(debt.id, "5", "0", payment_date="yesterday")


def test_returned_iff_nothing_remaining(db_session, till):
    debt = debt_service.create_debt(till.id, "12.50", "7.50")
    first = debt_service.record_payment(debt.id, "10", "0")
    debt_service.record_payment(debt.id, "0", "10")
    debt_service.delete_payment(first.id)
    debt_service.record_payment(debt.id, "10", "0")

    for d in debt_service.list_debts():
        assert (d.status == "returned") == (d.remaining_amount <= 0)
    assert [d.id for d in debt_service.list_debts(status="returned")] == [debt.id]


def test_missing_debt_or_payment_on_edit_and_delete(db_session, till):
    with pytest.raises(NotFound, match="Debt not found"):
        debt_service.update_debt(999, "10", "0")
    with pytest.raises(NotFound, match="Debt not found"):
        debt_service.delete_debt(999)
    with pytest.raises(NotFound, match="Debt payment not found"):
        debt_service.update_payment(999, "10", "0")
    with pytest.raises(NotFound, match="Debt payment not found"):
        debt_service.delete_payment(999)

    assert _balances(db_session, till.id) == (Decimal("500.00"), Decimal("200.00"))


@pytest.mark.parametrize("cash", ["1e30", "NaN", "abc"])
def test_unrepresentable_amount_is_a_validation_error(db_session, till, cash):
    with pytest.raises(ValidationFailed, match="cash_amount must be a number"):
        debt_service.create_debt(till.id, cash, "0")
    assert db_session.query(Debt).count() == 0


def test_oversized_amount_is_rejected(db_session, till):
    with pytest.raises(ValidationFailed, match="cannot exceed"):
        debt_service.create_debt(till.id, "1e12", "0")


def test_payment_date_offset_is_converted_to_utc(db_session, till):
    debt = debt_service.create_debt(till.id, "30", "0")
    payment = debt_service.record_payment(debt.id, "5", "0", payment_date="2024-05-01T13:00:00+03:00")
    assert payment.to_dict()["payment_date"] == "2024-05-01T10:00:00Z"
