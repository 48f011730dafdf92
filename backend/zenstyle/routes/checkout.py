# Overview: Flask API routes for POS checkout and transactions; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..services import checkout_service
from ..services.checkout_service import (
    APPOINTMENT_NOT_FOUND,
    CLIENT_NOT_FOUND,
    INSUFFICIENT_STOCK,
    ITEM_NOT_FOUND,
    STAFF_NOT_FOUND,
    TRANSACTION_NOT_FOUND,
    CheckoutError,
)


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")
transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

NOT_FOUND_CODES = {CLIENT_NOT_FOUND, STAFF_NOT_FOUND, ITEM_NOT_FOUND, APPOINTMENT_NOT_FOUND, TRANSACTION_NOT_FOUND}


def checkout_error_response(e: CheckoutError):
    if e.code in NOT_FOUND_CODES:
        status = 404
    elif e.code == INSUFFICIENT_STOCK:
        status = 409
    else:
        status = 400
    return jsonify({"error": str(e), "code": e.code, "details": e.details}), status


@checkout_bp.post("")
def checkout_route():
    """
    Post a POS sale.

    Request body:
    {
        "items": [{"type": "product", "id": 1, "quantity": 2},
                  {"type": "service", "id": 4, "quantity": 1}],
        "payment_method": "cash" | "card" | "credit",
        "client_id": 7,              // required for credit
        "staff_id": 2,               // optional
        "discount_percent": 10,      // optional, 0-100
        "amount_paid_cents": 1000,   // credit sales: paid now
        "appointment_id": 12,        // optional visit being checked out
        "notes": "..."
    }

    Returns:
        Transaction with items, 201
    """
    data = request.get_json(silent=True) or {}

    try:
        cart = checkout_service.parse_cart(data.get("items"))
        transaction = checkout_service.post_sale(
            cart=cart,
            payment_method=data.get("payment_method"),
            client_id=data.get("client_id"),
            staff_id=data.get("staff_id"),
            discount_percent=data.get("discount_percent", 0),
            amount_paid=data.get("amount_paid_cents"),
            appointment_id=data.get("appointment_id"),
            notes=data.get("notes"),
        )
        return jsonify(transaction.to_dict()), 201
    except CheckoutError as e:
        return checkout_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to post sale")
        return jsonify({"error": "Internal server error"}), 500


@transactions_bp.get("")
def list_transactions_route():
    """Query parameters: period (today|week|month|all), limit"""
    period = request.args.get("period", "all")
    limit = request.args.get("limit", type=int)
    try:
        transactions = checkout_service.list_transactions(period, limit=limit)
    except CheckoutError as e:
        return checkout_error_response(e)
    return jsonify({
        "items": [t.to_dict(include_items=False) for t in transactions],
        "count": len(transactions),
    })


@transactions_bp.get("/<int:transaction_id>")
def get_transaction_route(transaction_id: int):
    try:
        transaction = checkout_service.get_transaction(transaction_id)
    except CheckoutError as e:
        return checkout_error_response(e)
    return jsonify(transaction.to_dict())
