# Overview: Flask API routes for services and products; parses input and returns JSON responses.

from flask import Blueprint, current_app, jsonify, request

from ..models import Product, Service
from ..services import catalog_service
from ..services.catalog_service import (
    PRODUCT_CREATE_POLICY,
    PRODUCT_UPDATE_POLICY,
    SERVICE_POLICY,
    CatalogError,
    CatalogNotFoundError,
)
from ..validation import ValidationError, enforce_rules_product, enforce_rules_service, validate_payload


services_bp = Blueprint("services", __name__, url_prefix="/api/services")
products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def catalog_error_response(e: CatalogError):
    status = 404 if isinstance(e, CatalogNotFoundError) else 400
    return jsonify({"error": str(e), "details": e.details}), status


@services_bp.get("")
def list_services_route():
    active_only = request.args.get("active", "false").lower() == "true"
    services = catalog_service.list_services(active_only=active_only, category=request.args.get("category"))
    return jsonify({"items": [s.to_dict() for s in services], "count": len(services)})


@services_bp.post("")
def create_service_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=False)
        enforce_rules_service(patch)
        service = catalog_service.create_service(patch)
        return jsonify(service.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@services_bp.patch("/<int:service_id>")
def update_service_route(service_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Service, payload=payload, policy=SERVICE_POLICY, partial=True)
        enforce_rules_service(patch)
        service = catalog_service.update_service(service_id, patch)
        return jsonify(service.to_dict())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return catalog_error_response(e)


@products_bp.get("")
def list_products_route():
    """Query parameters: search, include_inactive, low_stock"""
    if request.args.get("low_stock", "false").lower() == "true":
        products = catalog_service.low_stock_products()
    else:
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        products = catalog_service.list_products(active_only=not include_inactive, search=request.args.get("search"))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
def create_product_route():
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
        product = catalog_service.create_product(patch)
        return jsonify(product.to_dict()), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return catalog_error_response(e)


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return jsonify(catalog_service.get_product(product_id).to_dict())
    except CatalogError as e:
        return catalog_error_response(e)


@products_bp.patch("/<int:product_id>")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True)
    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        product = catalog_service.update_product(product_id, patch)
        return jsonify(product.to_dict())
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except CatalogError as e:
        return catalog_error_response(e)


@products_bp.post("/<int:product_id>/adjust")
def adjust_stock_route(product_id: int):
    """Body: {"delta": -2}"""
    data = request.get_json(silent=True) or {}
    try:
        product = catalog_service.adjust_stock(product_id, data.get("delta"))
        return jsonify(product.to_dict())
    except CatalogError as e:
        return catalog_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to adjust stock")
        return jsonify({"error": "Internal server error"}), 500


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    try:
        product = catalog_service.delete_product(product_id)
        return jsonify(product.to_dict())
    except CatalogError as e:
        return catalog_error_response(e)
