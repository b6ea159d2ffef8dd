# Overview: Flask API routes for sales; parses input and returns JSON responses.

# backend/stockledger/routes/sells.py
"""
Sales API routes

Every write goes through sales_service, which runs stock, sale and
balance changes in one retried transaction.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import sales_service
from ..errors import LedgerError
from ..validation import parse_optional_id
from ..decorators import require_actor, require_body


sells_bp = Blueprint("sells", __name__, url_prefix="/api/sells")


@sells_bp.post("/")
@require_body
@require_actor
def create_sell_route():
    """
    Record a sale.

    Request body:
    {
        "items": [{"sku_id": 1, "product_id": 1, "price": "10.00", "quantity": 2}],
        "account_id": 1,
        "type": "cash" | "digital",
        "status": "pending"  (optional)
    }

    Returns:
        201: Sale created
        400: Invalid input / zero quantity
        404: Account or SKU not found
        409: Out of stock
        503: Write conflict outlived the retries
    """
    try:
        data = g.payload
        sell = sales_service.create_sale(
            items=data.get("items"),
            account_id=data.get("account_id"),
            sale_type=data.get("type"),
            user_id=g.actor_id,
            status=data.get("status"),
        )
        return jsonify({"sell": sell.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create sale")
        return jsonify({"error": "Internal server error"}), 500


@sells_bp.get("/")
@require_actor
def list_sells_route():
    """Sales rung up by the current actor (or ?user_id=), newest first."""
    try:
        user_id = parse_optional_id(request.args.get("user_id"), "user_id") or g.actor_id
        sells = sales_service.list_sales(user_id=user_id)
        return jsonify({"sells": [s.to_dict() for s in sells]}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@sells_bp.get("/<int:sell_id>")
def get_sell_route(sell_id: int):
    try:
        sell = sales_service.get_sale(sell_id)
        return jsonify({"sell": sell.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@sells_bp.patch("/<int:sell_id>")
@require_body
@require_actor
def update_sell_route(sell_id: int):
    """
    Rewrite a sale's items, account and type.

    Request body: same shape as create; "type" is required.
    """
    try:
        data = g.payload
        sell = sales_service.update_sale(
            sale_id=sell_id,
            items=data.get("items"),
            account_id=data.get("account_id"),
            sale_type=data.get("type"),
            status=data.get("status"),
        )
        return jsonify({"sell": sell.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update sale")
        return jsonify({"error": "Internal server error"}), 500


@sells_bp.delete("/<int:sell_id>")
@require_actor
def delete_sell_route(sell_id: int):
    """Reverse a sale's balance and stock effects and remove it."""
    try:
        sales_service.delete_sale(sell_id)
        return jsonify({"message": "Sell deleted successfully"}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete sale")
        return jsonify({"error": "Internal server error"}), 500
