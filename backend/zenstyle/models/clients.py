from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z, to_iso_date


CLIENT_PAYMENT_PURCHASE = "purchase"
CLIENT_PAYMENT_PAYMENT = "payment"
CLIENT_PAYMENT_CREDIT = "credit"
CLIENT_PAYMENT_TYPES = (CLIENT_PAYMENT_PURCHASE, CLIENT_PAYMENT_PAYMENT, CLIENT_PAYMENT_CREDIT)


class Client(db.Model):
    """
    Salon client with loyalty and credit tracking.

    Denormalized aggregates (loyalty_points, total_spent_cents, visit_count,
    credit_balance_cents) are only ever changed through atomic relative
    updates (see services.concurrency.atomic_increment).

    tier is derived from total_spent_cents and never set directly.
    credit_balance_cents > 0 means the client owes the salon.
    """
    __tablename__ = "clients"
    __table_args__ = (
        db.Index("ix_clients_phone", "phone"),
        db.Index("ix_clients_last_first", "last_name", "first_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    birth_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    loyalty_points = db.Column(db.Integer, nullable=False, default=0)
    tier = db.Column(db.String(16), nullable=False, default="bronze")
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    visit_count = db.Column(db.Integer, nullable=False, default=0)
    last_visit = db.Column(db.DateTime(timezone=True), nullable=True)
    credit_balance_cents = db.Column(db.Integer, nullable=False, default=0)

    preferred_staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    preferred_staff = db.relationship("Staff", foreign_keys=[preferred_staff_id])
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Client id={self.id} name={self.full_name!r} tier={self.tier}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "birth_date": to_iso_date(self.birth_date),
            "notes": self.notes,
            "loyalty_points": self.loyalty_points,
            "tier": self.tier,
            "total_spent_cents": self.total_spent_cents,
            "visit_count": self.visit_count,
            "last_visit": to_utc_z(self.last_visit) if self.last_visit else None,
            "credit_balance_cents": self.credit_balance_cents,
            "preferred_staff_id": self.preferred_staff_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class ClientPayment(db.Model):
    """
    Append-only ledger of client balance events.

    TYPES:
    - credit: unpaid part of a sale, adds to credit_balance_cents
    - payment: debt repayment, subtracts from credit_balance_cents
    - purchase: record of money actually paid at the till (balance neutral)

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "client_payments"
    __table_args__ = (
        db.Index("ix_client_payments_client_created", "client_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)

    # Transaction id (as text) when the entry comes from a POS sale
    reference_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    client = db.relationship("Client", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "reference_id": self.reference_id,
            "created_at": to_utc_z(self.created_at),
        }
