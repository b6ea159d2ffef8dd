# Overview: Read-only account balance routes.

from flask import Blueprint, jsonify

from ..extensions import db
from ..models import Account


accounts_bp = Blueprint("accounts", __name__, url_prefix="/api/accounts")


@accounts_bp.get("/")
def list_accounts_route():
    accounts = db.session.query(Account).order_by(Account.id).all()
    return jsonify({"accounts": [a.to_dict() for a in accounts]}), 200


@accounts_bp.get("/<int:account_id>")
def get_account_route(account_id: int):
    account = db.session.get(Account, account_id)
    if not account:
        return jsonify({"error": "Account not found"}), 404
    return jsonify({"account": account.to_dict()}), 200
