# Overview: Flask CLI commands for bootstrap and ledger inspection.

# backend/stockledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Ledger bootstrap:
# - python -m flask ledger init-db
#   Create any missing tables (use "flask db upgrade" for migrated deployments).
# - python -m flask ledger seed-demo
#   Idempotent: one default account plus a demo product with variants and SKUs.
#
# Ledger inspection:
# - python -m flask ledger check
#   Run the integrity audit; exits with status 1 when any issue is found.

import sys

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Account, Product, Variant, SKU
from .services.integrity_service import check_ledger_integrity
from .services.stock_service import recompute_product_stock


DEMO_PRODUCT = "Demo Tee"
DEMO_STOCK = {
    "Black": {"S": 5, "M": 8, "L": 4},
    "White": {"S": 3, "M": 6},
}


@click.group('ledger')
def ledger_group():
    """Ledger bootstrap and inspection commands."""


@ledger_group.command('init-db')
@with_appcontext
def init_db():
    """Create all ledger tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Tables created")


@ledger_group.command('seed-demo')
@click.option('--currency', default='KES', help='Label of the default account')
@with_appcontext
def seed_demo(currency):
    """Create a default account and a demo product if they are missing."""
    account = db.session.query(Account).filter_by(is_default=True).first()
    if account:
        click.echo(f"PASS Using existing default account: {account.account} (ID: {account.id})")
    else:
        account = Account(account=currency, balance=0, cash_balance=0, is_default=True)
        db.session.add(account)
        db.session.commit()
        click.echo(f"PASS Created default account: {account.account} (ID: {account.id})")

    product = db.session.query(Product).filter_by(name=DEMO_PRODUCT).first()
    if product:
        click.echo(f"WARN  Product '{DEMO_PRODUCT}' already exists, skipping...")
        return

    product = Product(name=DEMO_PRODUCT, stock_quantity=0)
    db.session.add(product)
    db.session.flush()

    for color, sizes in DEMO_STOCK.items():
        variant = Variant(product_id=product.id, color=color)
        db.session.add(variant)
        db.session.flush()
        for size, quantity in sizes.items():
            db.session.add(SKU(
                variant_id=variant.id,
                sku=f"TEE-{color[:3].upper()}-{size}",
                size=size,
                stock_quantity=quantity,
            ))

    recompute_product_stock(db.session, product.id)
    db.session.commit()
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, stock: {product.stock_quantity})")


@ledger_group.command('check')
@with_appcontext
def check():
    """Audit stock aggregates, sale totals and debt balances."""
    issues = check_ledger_integrity()
    if not issues:
        click.echo("PASS Ledger is consistent")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'Check':<16} {'Entity':<12} {'ID':<6} Message")
    click.echo("="*80)
    for issue in issues:
        click.echo(f"{issue['check']:<16} {issue['entity_type']:<12} {issue['entity_id']:<6} {issue['message']}")
    click.echo("="*80)
    click.echo(f"FAIL {len(issues)} issue(s) found")
    sys.exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(ledger_group)
