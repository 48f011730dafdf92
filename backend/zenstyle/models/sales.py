from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z


PAYMENT_METHOD_CASH = "cash"
PAYMENT_METHOD_CARD = "card"
PAYMENT_METHOD_CREDIT = "credit"
PAYMENT_METHODS = (PAYMENT_METHOD_CASH, PAYMENT_METHOD_CARD, PAYMENT_METHOD_CREDIT)

PAYMENT_STATUS_PAID = "paid"
PAYMENT_STATUS_PENDING = "pending"

ITEM_TYPE_SERVICE = "service"
ITEM_TYPE_PRODUCT = "product"


class Transaction(db.Model):
    """
    Completed POS sale.

    WHY: A sale is posted in one database transaction together with its
    stock, client ledger, loyalty and commission effects, so a Transaction
    row always implies all of those happened.

    total_cents = subtotal_cents - discount_cents + tax_cents
    payment_status is "pending" while part of the total is on client credit.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.Index("ix_transactions_created", "created_at"),
        db.Index("ix_transactions_staff_created", "staff_id", "created_at"),
        db.Index("ix_transactions_client_created", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=True, index=True)

    # Money (all amounts in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False)
    discount_percent = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)
    amount_paid_cents = db.Column(db.Integer, nullable=False)

    payment_method = db.Column(db.String(16), nullable=False)
    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_STATUS_PAID, index=True)

    notes = db.Column(db.String(255), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client", backref=db.backref("transactions", lazy=True))
    staff = db.relationship("Staff", backref=db.backref("transactions", lazy=True))
    items = db.relationship(
        "TransactionItem",
        backref="transaction",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="TransactionItem.id",
    )

    @property
    def credit_remaining_cents(self) -> int:
        return max(0, self.total_cents - self.amount_paid_cents)

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client.full_name if self.client else None,
            "staff_id": self.staff_id,
            "staff_name": self.staff.full_name if self.staff else None,
            "appointment_id": self.appointment_id,
            "subtotal_cents": self.subtotal_cents,
            "discount_percent": float(self.discount_percent or 0),
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "credit_remaining_cents": self.credit_remaining_cents,
            "payment_method": self.payment_method,
            "payment_status": self.payment_status,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class TransactionItem(db.Model):
    """
    Sale line. Names and unit price are snapshotted from the catalog so
    later catalog edits do not change sales history.
    """
    __tablename__ = "transaction_items"
    __table_args__ = (
        db.Index("ix_transaction_items_type_item", "item_type", "item_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)

    item_type = db.Column(db.String(16), nullable=False)  # service | product
    item_id = db.Column(db.Integer, nullable=False)
    name_ar = db.Column(db.String(255), nullable=True)
    name_fr = db.Column(db.String(255), nullable=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "item_type": self.item_type,
            "item_id": self.item_id,
            "name_ar": self.name_ar,
            "name_fr": self.name_fr,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
