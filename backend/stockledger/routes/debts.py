# Overview: Flask API routes for debts and debt payments; parses input and returns JSON responses.

# backend/stockledger/routes/debts.py
"""
Debt API Routes

DESIGN:
- Debts take money out of an account (cash and digital parts).
- Payments bring it back and reduce the remaining amount.
- A debt with payments cannot be deleted (409).
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import debt_service
from ..errors import LedgerError
from ..validation import parse_optional_id
from ..decorators import require_body


debts_bp = Blueprint("debts", __name__, url_prefix="/api/debts")


def _recorder_id(data: dict):
    """Body user_id if given, otherwise the current actor (may be None)."""
    return parse_optional_id(data.get("user_id"), "user_id") or getattr(g, "actor_id", None)


# =============================================================================
# DEBTS
# =============================================================================

@debts_bp.post("/")
@require_body
def create_debt_route():
    """
    Record a debt.

    Request body:
    {
        "account_id": 1,
        "cash_amount": "30.00",
        "digital_amount": "20.00",
        "details": "...",
        "taker_name": "...",
        "user_id": 7  (optional)
    }

    Returns:
        201: Debt created
        400: Total not positive / invalid amounts
        404: Account not found
    """
    try:
        data = g.payload
        debt = debt_service.create_debt(
            account_id=data.get("account_id"),
            cash_amount=data.get("cash_amount"),
            digital_amount=data.get("digital_amount"),
            details=data.get("details"),
            taker_name=data.get("taker_name"),
            user_id=_recorder_id(data),
        )
        return jsonify({"debt": debt.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create debt")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/")
def list_debts_route():
    """All debts with their payments, newest first (optional ?status=)."""
    debts = debt_service.list_debts(status=request.args.get("status"))
    return jsonify({"debts": [d.to_dict(include_payments=True) for d in debts]}), 200


@debts_bp.get("/<int:debt_id>")
def get_debt_route(debt_id: int):
    try:
        debt = debt_service.get_debt(debt_id)
        return jsonify({"debt": debt.to_dict(include_payments=True)}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@debts_bp.patch("/<int:debt_id>")
@require_body
def update_debt_route(debt_id: int):
    try:
        data = g.payload
        debt = debt_service.update_debt(
            debt_id=debt_id,
            cash_amount=data.get("cash_amount"),
            digital_amount=data.get("digital_amount"),
            details=data.get("details"),
            taker_name=data.get("taker_name"),
            user_id=_recorder_id(data),
        )
        return jsonify({"debt": debt.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update debt")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.delete("/<int:debt_id>")
def delete_debt_route(debt_id: int):
    try:
        debt_service.delete_debt(debt_id)
        return jsonify({"message": "Debt deleted successfully"}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete debt")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# PAYMENTS
# =============================================================================

@debts_bp.post("/payments")
@require_body
def record_payment_route():
    """
    Record a repayment.

    Request body:
    {
        "debt_id": 1,
        "cash_amount": "50.00",
        "digital_amount": "0",
        "payment_date": "2024-05-01T10:00:00Z"  (optional)
    }

    Returns:
        201: Payment recorded
        400: Amount exceeds remaining / not positive
        404: Debt not found
    """
    try:
        data = g.payload
        payment = debt_service.record_payment(
            debt_id=data.get("debt_id"),
            cash_amount=data.get("cash_amount"),
            digital_amount=data.get("digital_amount"),
            payment_date=data.get("payment_date"),
        )
        return jsonify({"payment": payment.to_dict()}), 201

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to record debt payment")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.get("/<int:debt_id>/payments")
def list_payments_route(debt_id: int):
    try:
        payments = debt_service.list_payments(debt_id)
        return jsonify({"payments": [p.to_dict() for p in payments]}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code


@debts_bp.patch("/payments/<int:payment_id>")
@require_body
def update_payment_route(payment_id: int):
    try:
        data = g.payload
        payment = debt_service.update_payment(
            payment_id=payment_id,
            cash_amount=data.get("cash_amount"),
            digital_amount=data.get("digital_amount"),
        )
        return jsonify({"payment": payment.to_dict()}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update debt payment")
        return jsonify({"error": "Internal server error"}), 500


@debts_bp.delete("/payments/<int:payment_id>")
def delete_payment_route(payment_id: int):
    try:
        debt_service.delete_payment(payment_id)
        return jsonify({"message": "Debt payment deleted successfully"}), 200

    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to delete debt payment")
        return jsonify({"error": "Internal server error"}), 500
