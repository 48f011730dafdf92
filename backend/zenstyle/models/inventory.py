from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z, to_iso_date


class Service(db.Model):
    """
    Catalog entry for a bookable salon service.

    Appointments and POS lines copy name and price at the time of use,
    so editing a service never rewrites history.
    """
    __tablename__ = "services"
    __table_args__ = (
        db.Index("ix_services_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name_ar = db.Column(db.String(255), nullable=False)
    name_fr = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(32), nullable=False, index=True)

    price_cents = db.Column(db.Integer, nullable=False)
    duration = db.Column(db.Integer, nullable=False)  # minutes

    description_ar = db.Column(db.Text, nullable=True)
    description_fr = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(16), nullable=False, default="#f43f5e")

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def __repr__(self) -> str:
        return f"<Service id={self.id} name={self.name_fr!r} price_cents={self.price_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name_ar": self.name_ar,
            "name_fr": self.name_fr,
            "category": self.category,
            "price_cents": self.price_cents,
            "duration": self.duration,
            "description_ar": self.description_ar,
            "description_fr": self.description_fr,
            "color": self.color,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Retail product with its authoritative stock count.

    stock is mutated only by checkout (decrement, guarded at zero) and
    purchasing (increment), both as atomic relative updates.
    unit_cost_cents is the latest supplier purchase price.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_name_fr", "name_fr"),
        db.Index("ix_products_active_stock", "is_active", "stock"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name_ar = db.Column(db.String(255), nullable=False)
    name_fr = db.Column(db.String(255), nullable=False)
    category = db.Column(db.String(64), nullable=True)

    price_cents = db.Column(db.Integer, nullable=False)
    unit_cost_cents = db.Column(db.Integer, nullable=True)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)
    expiry_date = db.Column(db.Date, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier", backref=db.backref("products", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.min_stock

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name_fr!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name_ar": self.name_ar,
            "name_fr": self.name_fr,
            "category": self.category,
            "price_cents": self.price_cents,
            "unit_cost_cents": self.unit_cost_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "is_low_stock": self.is_low_stock,
            "expiry_date": to_iso_date(self.expiry_date),
            "supplier_id": self.supplier_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class Supplier(db.Model):
    """
    Product supplier with an accounts-payable balance.

    balance_cents > 0 means the salon owes the supplier.
    Always equals sum(purchase order totals) - sum(supplier payments).
    """
    __tablename__ = "suppliers"
    __table_args__ = (
        db.Index("ix_suppliers_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    city = db.Column(db.String(128), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    balance_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r} balance_cents={self.balance_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_person": self.contact_person,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "city": self.city,
            "is_active": self.is_active,
            "balance_cents": self.balance_cents,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class SupplierPayment(db.Model):
    """Append-only record of money paid to a supplier."""
    __tablename__ = "supplier_payments"
    __table_args__ = (
        db.Index("ix_supplier_payments_supplier_date", "supplier_id", "payment_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)

    amount_cents = db.Column(db.Integer, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    payment_method = db.Column(db.String(32), nullable=False, default="cash")
    notes = db.Column(db.String(255), nullable=True)

    supplier = db.relationship("Supplier", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "purchase_order_id": self.purchase_order_id,
            "amount_cents": self.amount_cents,
            "payment_date": to_utc_z(self.payment_date),
            "payment_method": self.payment_method,
            "notes": self.notes,
        }


class PurchaseOrder(db.Model):
    """
    Supplier purchase order header.

    Stock is added when the order is posted, so posted orders are RECEIVED.
    payment_status records how the order was settled at posting time
    (paid, partial, credit).
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.Index("ix_purchase_orders_supplier_date", "supplier_id", "order_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    order_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    status = db.Column(db.String(16), nullable=False, default="received")
    payment_status = db.Column(db.String(16), nullable=False, default="credit")

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    notes = db.Column(db.String(255), nullable=True)

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        backref="purchase_order",
        cascade="all, delete-orphan",
        lazy=True,
    )

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "order_date": to_utc_z(self.order_date),
            "status": self.status,
            "payment_status": self.payment_status,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name_fr": self.product.name_fr if self.product else None,
            "product_name_ar": self.product.name_ar if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
