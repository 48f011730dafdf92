# Overview: Flask API routes for client operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..models import Client
from ..services import client_service
from ..services.client_service import CLIENT_POLICY, ClientError, ClientNotFoundError
from ..validation import ValidationError, validate_payload


clients_bp = Blueprint("clients", __name__, url_prefix="/api/clients")


def client_error_response(e: ClientError):
    status = 404 if isinstance(e, ClientNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@clients_bp.get("")
def list_clients_route():
    """Query parameters: search, tier, limit"""
    clients = client_service.list_clients(
        search=request.args.get("search"),
        tier=request.args.get("tier"),
        limit=request.args.get("limit", type=int),
    )
    return jsonify({"items": [c.to_dict() for c in clients], "count": len(clients)})


@clients_bp.post("")
def create_client_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=False)
        client = client_service.create_client(patch)
        return jsonify(client.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ClientError as e:
        return client_error_response(e)


@clients_bp.get("/<int:client_id>")
def get_client_route(client_id: int):
    try:
        return jsonify(client_service.get_client(client_id).to_dict())
    except ClientError as e:
        return client_error_response(e)


@clients_bp.patch("/<int:client_id>")
def update_client_route(client_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Client, payload=payload, policy=CLIENT_POLICY, partial=True)
        client = client_service.update_client(client_id, patch)
        return jsonify(client.to_dict())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ClientError as e:
        return client_error_response(e)


@clients_bp.get("/<int:client_id>/payments")
def list_client_payments_route(client_id: int):
    try:
        payments = client_service.list_client_payments(client_id)
    except ClientError as e:
        return client_error_response(e)
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


@clients_bp.post("/<int:client_id>/payments")
def record_client_payment_route(client_id: int):
    """Debt repayment. Body: {"amount_cents": 1000, "description": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        payment = client_service.record_client_payment(
            client_id,
            amount_cents=data.get("amount_cents"),
            description=data.get("description"),
        )
        client = client_service.get_client(client_id)
        return jsonify({"payment": payment.to_dict(), "client": client.to_dict()}), 201
    except ClientError as e:
        return client_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record client payment")
        return jsonify({"error": "Internal server error"}), 500
