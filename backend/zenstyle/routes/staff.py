# Overview: Flask API routes for staff and staff payments; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..models import Staff
from ..models.staff import SALARY_TYPES
from ..services import staff_service
from ..services.staff_service import STAFF_POLICY, StaffError, StaffNotFoundError
from ..validation import ValidationError, enforce_rules_staff, validate_payload


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


def staff_error_response(e: StaffError):
    status = 404 if isinstance(e, StaffNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@staff_bp.get("")
def list_staff_route():
    active_only = request.args.get("active", "false").lower() == "true"
    staff = staff_service.list_staff(active_only=active_only)
    return jsonify({"items": [s.to_dict() for s in staff], "count": len(staff)})


@staff_bp.post("")
def create_staff_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Staff, payload=payload, policy=STAFF_POLICY, partial=False)
        enforce_rules_staff(patch, SALARY_TYPES)
        staff = staff_service.create_staff(patch)
        return jsonify(staff.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@staff_bp.get("/<int:staff_id>")
def get_staff_route(staff_id: int):
    try:
        return jsonify(staff_service.get_staff(staff_id).to_dict())
    except StaffError as e:
        return staff_error_response(e)


@staff_bp.patch("/<int:staff_id>")
def update_staff_route(staff_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Staff, payload=payload, policy=STAFF_POLICY, partial=True)
        enforce_rules_staff(patch, SALARY_TYPES)
        staff = staff_service.update_staff(staff_id, patch)
        return jsonify(staff.to_dict())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except StaffError as e:
        return staff_error_response(e)


@staff_bp.post("/<int:staff_id>/active")
def set_staff_active_route(staff_id: int):
    """Body: {"is_active": true|false}"""
    data = request.get_json(silent=True) or {}
    if not isinstance(data.get("is_active"), bool):
        return jsonify({"error": "is_active must be a boolean"}), 400
    try:
        staff = staff_service.set_staff_active(staff_id, data["is_active"])
        return jsonify(staff.to_dict())
    except StaffError as e:
        return staff_error_response(e)


@staff_bp.get("/<int:staff_id>/payments")
def list_staff_payments_route(staff_id: int):
    try:
        payments = staff_service.list_staff_payments(staff_id)
    except StaffError as e:
        return staff_error_response(e)
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


@staff_bp.post("/<int:staff_id>/payments")
def add_staff_payment_route(staff_id: int):
    """Body: {"type": "salary|commission|advance|bonus|deduction", "amount_cents": 1000, "description": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        payment = staff_service.add_staff_payment(
            staff_id,
            type=data.get("type"),
            amount_cents=data.get("amount_cents"),
            description=data.get("description"),
        )
        return jsonify(payment.to_dict()), 201
    except StaffError as e:
        return staff_error_response(e)


@staff_bp.get("/<int:staff_id>/balance")
def staff_balance_route(staff_id: int):
    try:
        return jsonify(staff_service.staff_balance(staff_id))
    except StaffError as e:
        return staff_error_response(e)
