"""
Pytest fixtures for stockledger backend tests.

Provides test database setup, catalog/account fixtures, and test client.

Fixtures commit what they create: every ledger operation opens its own
transaction, so nothing may be left pending in the session beforehand.
"""

from decimal import Decimal

import pytest
from stockledger import create_app
from stockledger.extensions import db
from stockledger.models import Account, Product, Variant, SKU
from stockledger.services.stock_service import recompute_product_stock


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def make_account(session, label="KES", balance="0", cash_balance="0", is_default=False) -> Account:
    account = Account(
        account=label,
        balance=Decimal(balance),
        cash_balance=Decimal(cash_balance),
        is_default=is_default,
    )
    session.add(account)
    session.commit()
    return account


def make_sku(session, variant, code, stock, size=None) -> SKU:
    sku = SKU(variant_id=variant.id, sku=code, size=size, stock_quantity=stock)
    session.add(sku)
    session.flush()
    recompute_product_stock(session, variant.product_id)
    session.commit()
    return sku


@pytest.fixture(scope='function')
def cash_account(db_session):
    """Default account holding 100.00 in cash."""
    return make_account(db_session, cash_balance="100.00", is_default=True)


@pytest.fixture(scope='function')
def other_account(db_session):
    """Second account, for sales moved between accounts."""
    return make_account(db_session, label="USD")


@pytest.fixture(scope='function')
def product(db_session):
    product = Product(name="Linen Shirt", stock_quantity=0)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def variant(db_session, product):
    variant = Variant(product_id=product.id, color="Blue")
    db_session.add(variant)
    db_session.commit()
    return variant


@pytest.fixture(scope='function')
def sku(db_session, variant):
    """SKU with 5 units in stock."""
    return make_sku(db_session, variant, "SHIRT-BLU-M", 5, size="M")


@pytest.fixture(scope='function')
def second_sku(db_session, variant):
    """Another size of the same variant, 3 units in stock."""
    return make_sku(db_session, variant, "SHIRT-BLU-L", 3, size="L")


def actor_headers(actor_id: int = 7) -> dict:
    """Helper to create the current-actor header."""
    return {'X-Actor-Id': str(actor_id)}
