# Overview: Flask API routes for suppliers and purchase orders; parses input and returns JSON responses.

"""
Supplier Routes

Suppliers carry an accounts-payable balance. It is never written directly:
purchase orders raise it and supplier payments lower it.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import purchasing_service
from ..services.purchasing_service import PurchaseError, SupplierNotFoundError
from zenstyle.time_utils import to_utc_z


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")
purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")


def purchase_error_response(e: PurchaseError):
    status = 404 if isinstance(e, SupplierNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@suppliers_bp.get("")
def list_suppliers_route():
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    suppliers = purchasing_service.list_suppliers(include_inactive=include_inactive)
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
def create_supplier_route():
    data = request.get_json(silent=True) or {}
    try:
        supplier = purchasing_service.create_supplier(
            name=data.get("name"),
            contact_person=data.get("contact_person"),
            phone=data.get("phone"),
            email=data.get("email"),
            address=data.get("address"),
            city=data.get("city"),
        )
        return jsonify(supplier.to_dict()), 201
    except PurchaseError as e:
        return purchase_error_response(e)


@suppliers_bp.get("/<int:supplier_id>")
def get_supplier_route(supplier_id: int):
    try:
        return jsonify(purchasing_service.get_supplier(supplier_id).to_dict())
    except PurchaseError as e:
        return purchase_error_response(e)


@suppliers_bp.patch("/<int:supplier_id>")
def update_supplier_route(supplier_id: int):
    data = request.get_json(silent=True) or {}
    if "balance_cents" in data:
        return jsonify({"error": "balance_cents cannot be set directly"}), 400
    try:
        supplier = purchasing_service.update_supplier(supplier_id, data)
        return jsonify(supplier.to_dict())
    except PurchaseError as e:
        return purchase_error_response(e)


@suppliers_bp.post("/<int:supplier_id>/payments")
def supplier_payment_route(supplier_id: int):
    """Body: {"amount_cents": 1000, "payment_method": "cash", "notes": "..."}"""
    data = request.get_json(silent=True) or {}
    try:
        payment = purchasing_service.post_supplier_payment(
            supplier_id=supplier_id,
            amount_cents=data.get("amount_cents"),
            notes=data.get("notes"),
            payment_method=data.get("payment_method") or purchasing_service.DEFAULT_PAYMENT_METHOD,
        )
        return jsonify(payment.to_dict()), 201
    except PurchaseError as e:
        return purchase_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record supplier payment")
        return jsonify({"error": "Internal server error"}), 500


@suppliers_bp.get("/<int:supplier_id>/history")
def supplier_history_route(supplier_id: int):
    try:
        entries = purchasing_service.supplier_history(supplier_id)
    except PurchaseError as e:
        return purchase_error_response(e)
    for entry in entries:
        entry["date"] = to_utc_z(entry["date"])
    return jsonify({"items": entries, "count": len(entries)})


@purchase_orders_bp.get("")
def list_purchase_orders_route():
    orders = purchasing_service.list_purchase_orders(supplier_id=request.args.get("supplier_id", type=int))
    return jsonify({"items": [o.to_dict() for o in orders], "count": len(orders)})


@purchase_orders_bp.get("/<int:order_id>")
def get_purchase_order_route(order_id: int):
    try:
        order = purchasing_service.get_purchase_order(order_id)
    except PurchaseError as e:
        return jsonify({"error": str(e), "details": e.details}), 404
    return jsonify(order.to_dict(include_items=True))


@purchase_orders_bp.post("")
def create_purchase_order_route():
    """
    Post a batch purchase.

    Request body:
    {
        "supplier_id": 1,
        "items": [
            {"product_id": 5, "quantity": 10, "unit_price_cents": 500},
            {"name_fr": "Shampooing", "name_ar": "...", "category": "hair",
             "quantity": 10, "unit_price_cents": 500}
        ],
        "payment_status": "paid" | "partial" | "credit",
        "partial_amount_cents": 2000,   // partial only
        "notes": "..."
    }
    """
    data = request.get_json(silent=True) or {}
    if data.get("supplier_id") is None:
        return jsonify({"error": "supplier_id is required"}), 400

    try:
        lines = purchasing_service.parse_purchase_lines(data.get("items"))
        order = purchasing_service.post_purchase(
            supplier_id=data["supplier_id"],
            lines=lines,
            payment_status=data.get("payment_status", purchasing_service.PURCHASE_CREDIT),
            partial_amount=data.get("partial_amount_cents"),
            notes=data.get("notes"),
        )
        return jsonify(order.to_dict(include_items=True)), 201
    except PurchaseError as e:
        return purchase_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to post purchase order")
        return jsonify({"error": "Internal server error"}), 500
