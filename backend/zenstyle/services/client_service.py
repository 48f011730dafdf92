# Overview: Service-layer operations for clients; encapsulates business logic and database work.

"""
Client Service

Clients are never hard-deleted. Loyalty and balance aggregates are read-only
here: they change only through checkout, appointment completion and
record_client_payment.
"""

from __future__ import annotations

from sqlalchemy import case, func, or_

from ..extensions import db
from ..models import Client, ClientPayment, Staff
from ..models.clients import CLIENT_PAYMENT_CREDIT, CLIENT_PAYMENT_PAYMENT
from ..validation import ModelValidationPolicy
from .concurrency import atomic_increment, lock_for_update, run_with_retry


CLIENT_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "phone", "email", "birth_date", "notes", "preferred_staff_id"},
    required_on_create={"first_name"},
)


class ClientError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ClientNotFoundError(ClientError):
    pass


def _check_preferred_staff(patch: dict) -> None:
    staff_id = patch.get("preferred_staff_id")
    if staff_id is not None and db.session.query(Staff.id).filter_by(id=staff_id).first() is None:
        raise ClientError("Preferred staff member not found", {"preferred_staff_id": staff_id})


def create_client(patch: dict) -> Client:
    _check_preferred_staff(patch)
    client = Client(**patch)
    if client.last_name is None:
        client.last_name = ""
    db.session.add(client)
    db.session.commit()
    return client


def update_client(client_id: int, patch: dict) -> Client:
    client = get_client(client_id)
    _check_preferred_staff(patch)
    for key, value in patch.items():
        setattr(client, key, value)
    db.session.commit()
    return client


def get_client(client_id: int) -> Client:
    client = db.session.query(Client).filter_by(id=client_id).first()
    if client is None:
        raise ClientNotFoundError("Client not found", {"client_id": client_id})
    return client


def list_clients(*, search: str | None = None, tier: str | None = None, limit: int | None = None) -> list[Client]:
    query = db.session.query(Client)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Client.first_name.ilike(pattern),
                Client.last_name.ilike(pattern),
                Client.phone.ilike(pattern),
                Client.email.ilike(pattern),
            )
        )
    if tier:
        query = query.filter(Client.tier == tier)
    query = query.order_by(Client.last_name.asc(), Client.first_name.asc(), Client.id.asc())
    if limit:
        query = query.limit(limit)
    return query.all()


def record_client_payment(client_id: int, *, amount_cents: int, description: str | None = None) -> ClientPayment:
    """
    Record a debt repayment: a "payment" ledger entry and an equal decrease
    of the client's credit balance, in one transaction.
    """
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise ClientError("Payment amount must be a positive integer amount in cents")

    def _op():
        client = lock_for_update(db.session.query(Client).filter_by(id=client_id)).first()
        if client is None:
            raise ClientNotFoundError("Client not found", {"client_id": client_id})

        payment = ClientPayment(
            client_id=client_id,
            type=CLIENT_PAYMENT_PAYMENT,
            amount_cents=amount_cents,
            description=description or "Debt repayment",
        )
        db.session.add(payment)
        atomic_increment(Client, client_id, credit_balance_cents=-amount_cents)
        db.session.commit()
        return payment

    return run_with_retry(_op)


def list_client_payments(client_id: int) -> list[ClientPayment]:
    get_client(client_id)
    return (
        db.session.query(ClientPayment)
        .filter_by(client_id=client_id)
        .order_by(ClientPayment.created_at.desc(), ClientPayment.id.desc())
        .all()
    )


def ledger_balance_expr():
    """Signed contribution of a ClientPayment row to the credit balance."""
    return case(
        (ClientPayment.type == CLIENT_PAYMENT_CREDIT, ClientPayment.amount_cents),
        (ClientPayment.type == CLIENT_PAYMENT_PAYMENT, -ClientPayment.amount_cents),
        else_=0,
    )


def client_ledger_balance(client_id: int) -> int:
    """Credit balance recomputed from the ledger (credit adds, payment subtracts)."""
    total = (
        db.session.query(func.coalesce(func.sum(ledger_balance_expr()), 0))
        .filter(ClientPayment.client_id == client_id)
        .scalar()
    )
    return int(total or 0)
