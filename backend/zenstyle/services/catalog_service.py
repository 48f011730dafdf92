# Overview: Service-layer operations for the service and product catalog; encapsulates business logic and database work.

"""
Catalog Service

Services and products are deactivated rather than deleted: sales lines and
purchase orders keep pointing at them.

Product stock is not writable through updates; it moves only through
checkout, purchasing and adjust_stock, all as atomic relative updates.
"""

from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Product, Service, Supplier
from ..validation import ModelValidationPolicy
from .concurrency import atomic_increment, run_with_retry


SERVICE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name_ar",
        "name_fr",
        "category",
        "price_cents",
        "duration",
        "description_ar",
        "description_fr",
        "color",
        "is_active",
    },
    required_on_create={"name_ar", "name_fr", "category", "price_cents", "duration"},
)

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields={
        "name_ar",
        "name_fr",
        "category",
        "price_cents",
        "unit_cost_cents",
        "stock",
        "min_stock",
        "expiry_date",
        "supplier_id",
    },
    required_on_create={"name_ar", "name_fr", "price_cents"},
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(
    writable_fields=(PRODUCT_CREATE_POLICY.writable_fields - {"stock"}) | {"is_active"},
)


class CatalogError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class CatalogNotFoundError(CatalogError):
    pass


def create_service(patch: dict) -> Service:
    service = Service(**patch)
    db.session.add(service)
    db.session.commit()
    return service


def update_service(service_id: int, patch: dict) -> Service:
    service = get_service(service_id)
    for key, value in patch.items():
        setattr(service, key, value)
    db.session.commit()
    return service


def get_service(service_id: int) -> Service:
    service = db.session.query(Service).filter_by(id=service_id).first()
    if service is None:
        raise CatalogNotFoundError("Service not found", {"service_id": service_id})
    return service


def list_services(*, active_only: bool = False, category: str | None = None) -> list[Service]:
    query = db.session.query(Service)
    if active_only:
        query = query.filter(Service.is_active.is_(True))
    if category:
        query = query.filter(Service.category == category)
    return query.order_by(Service.category.asc(), Service.name_fr.asc()).all()


def _check_supplier(patch: dict) -> None:
    supplier_id = patch.get("supplier_id")
    if supplier_id is not None and db.session.query(Supplier.id).filter_by(id=supplier_id).first() is None:
        raise CatalogError("Supplier not found", {"supplier_id": supplier_id})


def create_product(patch: dict) -> Product:
    _check_supplier(patch)
    product = Product(**patch)
    if product.stock is None:
        product.stock = 0
    db.session.add(product)
    db.session.commit()
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    _check_supplier(patch)
    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int) -> Product:
    """Remove a product from sale. History keeps referencing it."""
    product = get_product(product_id)
    product.is_active = False
    db.session.commit()
    return product


def adjust_stock(product_id: int, delta: int) -> Product:
    """Manual stock correction (count, breakage). Stock never goes below zero."""
    if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
        raise CatalogError("delta must be a non-zero integer")

    def _op():
        get_product(product_id)
        updated = atomic_increment(Product, product_id, guard=Product.stock + delta >= 0, stock=delta)
        if not updated:
            raise CatalogError("Stock cannot go below zero", {"product_id": product_id, "delta": delta})
        db.session.commit()
        return get_product(product_id)

    return run_with_retry(_op)


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise CatalogNotFoundError("Product not found", {"product_id": product_id})
    return product


def list_products(*, active_only: bool = True, search: str | None = None) -> list[Product]:
    query = db.session.query(Product)
    if active_only:
        query = query.filter(Product.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Product.name_fr.ilike(pattern), Product.name_ar.ilike(pattern)))
    return query.order_by(Product.name_fr.asc()).all()


def low_stock_products() -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.is_active.is_(True), Product.stock <= Product.min_stock)
        .order_by(Product.stock.asc(), Product.name_fr.asc())
        .all()
    )
