# Overview: Service-layer operations for suppliers and purchasing; encapsulates business logic and database work.

"""
Purchasing / Accounts-Payable Service

WHY: A batch purchase creates or restocks products, records a purchase order
and moves the supplier balance. All of it is one database transaction so the
balance always equals sum(order totals) - sum(payments).

RULES:
- subtotal = sum(quantity * unit_price)
- tax = subtotal * PURCHASE_TAX_RATE (default 0.19), half-up
- new products: retail price = unit_price * RETAIL_MARKUP (default 1.5),
  stock = quantity, min_stock = DEFAULT_MIN_STOCK (default 5)
- existing products: stock += quantity, unit cost overwritten
- supplier balance += total, then:
    paid    -> payment of total
    partial -> payment of partial_amount (0 < partial <= total)
    credit  -> no payment
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier, SupplierPayment
from .concurrency import atomic_increment, lock_for_update, run_with_retry
from zenstyle.money import scale


PURCHASE_PAID = "paid"
PURCHASE_PARTIAL = "partial"
PURCHASE_CREDIT = "credit"
PURCHASE_PAYMENT_STATUSES = (PURCHASE_PAID, PURCHASE_PARTIAL, PURCHASE_CREDIT)

ORDER_STATUS_RECEIVED = "received"
DEFAULT_PAYMENT_METHOD = "cash"


class PurchaseError(Exception):
    """Raised for purchasing errors. Nothing is written when it is raised."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SupplierNotFoundError(PurchaseError):
    pass


@dataclass(frozen=True)
class NewProductLine:
    name_ar: str
    name_fr: str
    quantity: int
    unit_price_cents: int
    category: str | None = None


@dataclass(frozen=True)
class ExistingProductLine:
    product_id: int
    quantity: int
    unit_price_cents: int


def _int_field(raw: dict, key: str, index: int, *, minimum: int) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise PurchaseError(f"{key} must be an integer", {"index": index})
    if value < minimum:
        raise PurchaseError(f"{key} must be >= {minimum}", {"index": index})
    return value


def parse_purchase_lines(items) -> list:
    """
    Build typed purchase lines from request JSON.

    Existing product: {"product_id", "quantity", "unit_price_cents"}
    New product:      {"name_ar", "name_fr", "category", "quantity", "unit_price_cents"}
    """
    if not isinstance(items, list) or not items:
        raise PurchaseError("At least one line is required")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise PurchaseError("Purchase line must be an object", {"index": index})
        quantity = _int_field(raw, "quantity", index, minimum=1)
        unit_price = _int_field(raw, "unit_price_cents", index, minimum=0)

        if raw.get("product_id") is not None:
            lines.append(
                ExistingProductLine(
                    product_id=_int_field(raw, "product_id", index, minimum=1),
                    quantity=quantity,
                    unit_price_cents=unit_price,
                )
            )
            continue

        name_fr = (raw.get("name_fr") or "").strip()
        name_ar = (raw.get("name_ar") or "").strip() or name_fr
        if not name_fr:
            raise PurchaseError("New product requires name_fr", {"index": index})
        lines.append(
            NewProductLine(
                name_ar=name_ar,
                name_fr=name_fr,
                category=raw.get("category"),
                quantity=quantity,
                unit_price_cents=unit_price,
            )
        )
    return lines


def _lock_supplier(supplier_id: int) -> Supplier:
    supplier = lock_for_update(db.session.query(Supplier).filter_by(id=supplier_id)).first()
    if supplier is None:
        raise SupplierNotFoundError("Supplier not found", {"supplier_id": supplier_id})
    return supplier


def _record_payment(supplier_id: int, amount_cents: int, *, purchase_order_id=None, method=DEFAULT_PAYMENT_METHOD, notes=None) -> SupplierPayment:
    payment = SupplierPayment(
        supplier_id=supplier_id,
        purchase_order_id=purchase_order_id,
        amount_cents=amount_cents,
        payment_method=method,
        notes=notes,
    )
    db.session.add(payment)
    atomic_increment(Supplier, supplier_id, balance_cents=-amount_cents)
    return payment


def post_purchase(
    *,
    supplier_id: int,
    lines,
    payment_status: str,
    partial_amount: int | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Post a batch purchase from a supplier.

    Returns:
        The committed PurchaseOrder (status "received")

    Raises:
        SupplierNotFoundError: unknown supplier
        PurchaseError: bad lines, unknown product, bad payment status or
            partial amount outside (0, total]
    """
    if payment_status not in PURCHASE_PAYMENT_STATUSES:
        raise PurchaseError(
            f"Unknown payment status '{payment_status}'",
            {"allowed": list(PURCHASE_PAYMENT_STATUSES)},
        )
    if not lines:
        raise PurchaseError("At least one line is required")
    for line in lines:
        if not isinstance(line, (NewProductLine, ExistingProductLine)):
            raise PurchaseError("Unknown purchase line")
        if line.quantity <= 0:
            raise PurchaseError("Quantity must be positive")
        if line.unit_price_cents < 0:
            raise PurchaseError("Unit price must be >= 0")
    if payment_status == PURCHASE_PARTIAL:
        if partial_amount is None or isinstance(partial_amount, bool) or not isinstance(partial_amount, int) or partial_amount <= 0:
            raise PurchaseError("Partial payment requires a positive partial_amount")

    tax_rate = current_app.config.get("PURCHASE_TAX_RATE", 0.19)
    markup = current_app.config.get("RETAIL_MARKUP", 1.5)
    min_stock = current_app.config.get("DEFAULT_MIN_STOCK", 5)

    def _op():
        supplier = _lock_supplier(supplier_id)
        if not supplier.is_active:
            raise PurchaseError("Supplier is not active", {"supplier_id": supplier_id})

        subtotal = sum(line.quantity * line.unit_price_cents for line in lines)
        tax = scale(subtotal, tax_rate)
        total = subtotal + tax
        if payment_status == PURCHASE_PARTIAL and partial_amount > total:
            raise PurchaseError(
                "Partial payment cannot exceed the order total",
                {"partial_amount": partial_amount, "total_cents": total},
            )

        order = PurchaseOrder(
            supplier_id=supplier.id,
            status=ORDER_STATUS_RECEIVED,
            payment_status=payment_status,
            subtotal_cents=subtotal,
            tax_cents=tax,
            total_cents=total,
            notes=notes,
        )
        db.session.add(order)
        db.session.flush()

        for line in lines:
            if isinstance(line, NewProductLine):
                product = Product(
                    name_ar=line.name_ar,
                    name_fr=line.name_fr,
                    category=line.category,
                    price_cents=scale(line.unit_price_cents, markup),
                    unit_cost_cents=line.unit_price_cents,
                    stock=line.quantity,
                    min_stock=min_stock,
                    supplier_id=supplier.id,
                    is_active=True,
                )
                db.session.add(product)
                db.session.flush()
                product_id = product.id
            else:
                product_id = line.product_id
                updated = atomic_increment(
                    Product,
                    product_id,
                    stock=line.quantity,
                    values={"unit_cost_cents": line.unit_price_cents},
                )
                if not updated:
                    raise PurchaseError("Product not found", {"product_id": product_id})

            order.items.append(
                PurchaseOrderItem(
                    product_id=product_id,
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    total_cents=line.quantity * line.unit_price_cents,
                )
            )

        atomic_increment(Supplier, supplier.id, balance_cents=total)

        if payment_status == PURCHASE_PAID:
            _record_payment(supplier.id, total, purchase_order_id=order.id, notes=f"Payment for order #{order.id}")
        elif payment_status == PURCHASE_PARTIAL:
            _record_payment(supplier.id, partial_amount, purchase_order_id=order.id, notes=f"Partial payment for order #{order.id}")

        db.session.commit()
        return order

    return run_with_retry(_op)


def post_supplier_payment(
    *,
    supplier_id: int,
    amount_cents: int,
    notes: str | None = None,
    payment_method: str = DEFAULT_PAYMENT_METHOD,
) -> SupplierPayment:
    """Record a standalone payment to a supplier and reduce the balance owed."""
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise PurchaseError("Payment amount must be a positive integer amount in cents")

    def _op():
        _lock_supplier(supplier_id)
        payment = _record_payment(supplier_id, amount_cents, method=payment_method or DEFAULT_PAYMENT_METHOD, notes=notes)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def supplier_history(supplier_id: int) -> list[dict]:
    """Purchase orders and payments of a supplier, newest first."""
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if supplier is None:
        raise SupplierNotFoundError("Supplier not found", {"supplier_id": supplier_id})

    entries = []
    for order in db.session.query(PurchaseOrder).filter_by(supplier_id=supplier_id).all():
        entries.append({
            "kind": "order",
            "id": order.id,
            "date": order.order_date,
            "amount_cents": order.total_cents,
            "payment_status": order.payment_status,
            "notes": order.notes,
        })
    for payment in db.session.query(SupplierPayment).filter_by(supplier_id=supplier_id).all():
        entries.append({
            "kind": "payment",
            "id": payment.id,
            "date": payment.payment_date,
            "amount_cents": payment.amount_cents,
            "payment_method": payment.payment_method,
            "notes": payment.notes,
        })
    # Orders before payments at the same instant, so newest-first shows the payment on top
    entries.sort(key=lambda e: (e["date"], e["kind"] == "payment", e["id"]), reverse=True)
    return entries


def get_purchase_order(order_id: int) -> PurchaseOrder:
    order = db.session.query(PurchaseOrder).filter_by(id=order_id).first()
    if order is None:
        raise PurchaseError("Purchase order not found", {"purchase_order_id": order_id})
    return order


def list_purchase_orders(*, supplier_id: int | None = None) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    return query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()


def create_supplier(
    *,
    name: str,
    contact_person: str | None = None,
    phone: str | None = None,
    email: str | None = None,
    address: str | None = None,
    city: str | None = None,
) -> Supplier:
    if not name or not name.strip():
        raise PurchaseError("Supplier name is required")

    supplier = Supplier(
        name=name.strip(),
        contact_person=contact_person,
        phone=phone,
        email=email,
        address=address,
        city=city,
        is_active=True,
        balance_cents=0,
    )
    db.session.add(supplier)
    db.session.commit()
    return supplier


def update_supplier(supplier_id: int, patch: dict) -> Supplier:
    """Update contact fields. The balance is never set directly."""
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if supplier is None:
        raise SupplierNotFoundError("Supplier not found", {"supplier_id": supplier_id})
    if "name" in patch and not (patch["name"] or "").strip():
        raise PurchaseError("Supplier name cannot be empty")
    for key in ("name", "contact_person", "phone", "email", "address", "city", "is_active"):
        if key in patch:
            setattr(supplier, key, patch[key])
    db.session.commit()
    return supplier


def list_suppliers(*, include_inactive: bool = False) -> list[Supplier]:
    query = db.session.query(Supplier)
    if not include_inactive:
        query = query.filter(Supplier.is_active.is_(True))
    return query.order_by(Supplier.name.asc()).all()


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.query(Supplier).filter_by(id=supplier_id).first()
    if supplier is None:
        raise SupplierNotFoundError("Supplier not found", {"supplier_id": supplier_id})
    return supplier
