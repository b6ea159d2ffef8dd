"""
Sale create/update/delete keep stock, sale totals and balances in step.
"""

from decimal import Decimal

import pytest

from stockledger.errors import InvalidQuantity, NotFound, OutOfStock, ValidationFailed
from stockledger.models import Account, Product, SKU, Sell, SellItem
from stockledger.services import sales_service


def _line(sku, quantity=2, price="10.00"):
    return {"sku_id": sku.id, "product_id": sku.variant.product_id, "price": price, "quantity": quantity}


def _balances(session, account_id):
    account = session.get(Account, account_id)
    session.refresh(account)
    return account.balance, account.cash_balance


def test_cash_sale_round_trip(db_session, cash_account, product, sku):
    sell = sales_service.create_sale([_line(sku)], cash_account.id, "cash", user_id=7)

    assert sell.total == Decimal("20.00")
    assert sell.user_id == 7
    assert sell.status == "pending"
    assert [i.quantity for i in sell.items] == [2]
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("120.00"))
    assert db_session.get(SKU, sku.id).stock_quantity == 3
    assert db_session.get(Product, product.id).stock_quantity == 3

    sales_service.delete_sale(sell.id)

    assert db_session.get(Sell, sell.id) is None
    assert db_session.query(SellItem).count() == 0
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("100.00"))
    assert db_session.get(SKU, sku.id).stock_quantity == 5
    assert db_session.get(Product, product.id).stock_quantity == 5


def test_digital_sale_credits_balance(db_session, cash_account, sku):
    sales_service.create_sale([_line(sku, quantity=1, price="12.50")], cash_account.id, "digital")
    assert _balances(db_session, cash_account.id) == (Decimal("12.50"), Decimal("100.00"))


def test_multi_line_total(db_session, cash_account, product, sku, second_sku):
    sell = sales_service.create_sale(
        [_line(sku, quantity=1, price="9.99"), _line(second_sku, quantity=3, price="0.335")],
        cash_account.id,
        "cash",
    )
    # 0.335 rounds half-up to 0.34
    assert sell.total == Decimal("11.01")
    assert db_session.get(Product, product.id).stock_quantity == 4


def test_update_moves_sale_between_accounts(db_session, cash_account, other_account, sku, second_sku):
    sell = sales_service.create_sale([_line(sku)], cash_account.id, "cash")
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("120.00"))

    updated = sales_service.update_sale(
        sell.id, [_line(second_sku, quantity=1, price="35.00")], other_account.id, "digital"
    )

    assert updated.total == Decimal("35.00")
    assert updated.account_id == other_account.id
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("100.00"))
    assert _balances(db_session, other_account.id) == (Decimal("35.00"), Decimal("0"))
    assert db_session.get(SKU, sku.id).stock_quantity == 5
    assert db_session.get(SKU, second_sku.id).stock_quantity == 2


def test_update_switches_type_on_same_account(db_session, cash_account, sku):
    sell = sales_service.create_sale([_line(sku)], cash_account.id, "cash")
    sales_service.update_sale(sell.id, [_line(sku, quantity=3)], cash_account.id, "digital")

    assert _balances(db_session, cash_account.id) == (Decimal("30.00"), Decimal("100.00"))
    assert db_session.get(SKU, sku.id).stock_quantity == 2


def test_update_can_use_restocked_units(db_session, cash_account, sku):
    # all 5 units sold, then the sale is rewritten to 5 again
    sell = sales_service.create_sale([_line(sku, quantity=5)], cash_account.id, "cash")
    assert db_session.get(SKU, sku.id).stock_quantity == 0

    updated = sales_service.update_sale(sell.id, [_line(sku, quantity=5, price="8.00")], cash_account.id, "cash")

    assert updated.total == Decimal("40.00")
    assert db_session.get(SKU, sku.id).stock_quantity == 0
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("140.00"))


def test_out_of_stock_leaves_nothing_behind(db_session, cash_account, product, sku, second_sku):
    with pytest.raises(OutOfStock):
        sales_service.create_sale([_line(sku, quantity=1), _line(second_sku, quantity=4)], cash_account.id, "cash")

    assert db_session.query(Sell).count() == 0
    assert db_session.get(SKU, sku.id).stock_quantity == 5
    assert db_session.get(Product, product.id).stock_quantity == 8
    assert _balances(db_session, cash_account.id) == (Decimal("0"), Decimal("100.00"))


def test_failed_update_keeps_original_sale(db_session, cash_account, sku, second_sku):
    sell = sales_service.create_sale([_line(sku)], cash_account.id, "cash")

    with pytest.raises(OutOfStock):
        sales_service.update_sale(sell.id, [_line(second_sku, quantity=10)], cash_account.id, "cash")

    reloaded = sales_service.get_sale(sell.id)
    assert reloaded.total == Decimal("20.00")
    assert [i.sku_id for i in reloaded.items] == [sku.id]
    assert db_session.get(SKU, sku.id).stock_quantity == 3
    assert db_session.get(SKU, second_sku.id).stock_quantity == 3


def test_zero_quantity_line(db_session, cash_account, sku):
    with pytest.raises(InvalidQuantity):
        sales_service.create_sale([_line(sku, quantity=0)], cash_account.id, "cash")
    assert db_session.query(Sell).count() == 0


@pytest.mark.parametrize("items, account, sale_type, message", [
    ([], 1, "cash", "Items are required"),
    ([{"sku_id": 1, "price": "1", "quantity": 1}], None, "cash", "Account ID is required"),
    ([{"sku_id": 1, "price": "1", "quantity": 1}], 1, None, "Type is required"),
    ([{"sku_id": 1, "price": "1", "quantity": 1}], 1, "card", "Type must be one of"),
    ([{"sku_id": 1, "price": "-1", "quantity": 1}], 1, "cash", "must be >= 0"),
    ([{"sku_id": 1, "price": "1", "quantity": 1.5}], 1, "cash", "must be an integer"),
])
def test_invalid_input(db_session, items, account, sale_type, message):
    with pytest.raises(ValidationFailed, match=message):
        sales_service.create_sale(items, account, sale_type)


def test_product_must_match_sku(db_session, cash_account, sku):
    other = Product(name="Other", stock_quantity=0)
    db_session.add(other)
    db_session.commit()

    with pytest.raises(ValidationFailed, match="does not belong"):
        sales_service.create_sale(
            [{"sku_id": sku.id, "product_id": other.id, "price": "1", "quantity": 1}], cash_account.id, "cash"
        )
    assert db_session.get(SKU, sku.id).stock_quantity == 5


def test_unknown_account(db_session, sku):
    with pytest.raises(NotFound, match="Account with ID 999 not found"):
        sales_service.create_sale([_line(sku)], 999, "cash")
    assert db_session.get(SKU, sku.id).stock_quantity == 5


def test_unknown_sale(db_session, cash_account, sku):
    with pytest.raises(NotFound):
        sales_service.delete_sale(4242)
    with pytest.raises(NotFound, match="Sell not found"):
        sales_service.get_sale(4242)


def test_list_sales_by_user(db_session, cash_account, sku):
    first = sales_service.create_sale([_line(sku, quantity=1)], cash_account.id, "cash", user_id=1)
    second = sales_service.create_sale([_line(sku, quantity=1)], cash_account.id, "cash", user_id=2)
    third = sales_service.create_sale([_line(sku, quantity=1)], cash_account.id, "cash", user_id=1)

    assert [s.id for s in sales_service.list_sales(user_id=1)] == [third.id, first.id]
    assert len(sales_service.list_sales()) == 3
    assert second.id not in [s.id for s in sales_service.list_sales(user_id=1)]


def test_net_balance_change_equals_committed_totals(db_session, cash_account, other_account, sku, second_sku):
    def combined():
        return sum(_balances(db_session, cash_account.id)) + sum(_balances(db_session, other_account.id))

    start = combined()
    a = sales_service.create_sale([_line(sku, quantity=1, price="4.40")], cash_account.id, "cash")
    b = sales_service.create_sale([_line(second_sku, quantity=2, price="3.30")], other_account.id, "digital")
    sales_service.update_sale(a.id, [_line(sku, quantity=2, price="4.40")], other_account.id, "cash")
    sales_service.delete_sale(b.id)

    assert combined() - start == Decimal("8.80")


def test_unrepresentable_price_is_a_validation_error(db_session, cash_account, sku):
    with pytest.raises(ValidationFailed, match=r"items\[0\]\.price must be a number"):
        sales_service.create_sale(
            [{"sku_id": sku.id, "price": "1e30", "quantity": 1}], cash_account.id, "cash"
        )
    assert db_session.get(SKU, sku.id).stock_quantity == 5
