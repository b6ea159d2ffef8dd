from .accounts import Account
from .catalog import Product, Variant, SKU
from .sales import Sell, SellItem
from .debts import Debt, DebtPayment

__all__ = [
    'Account',
    'Product', 'Variant', 'SKU',
    'Sell', 'SellItem',
    'Debt', 'DebtPayment',
]
