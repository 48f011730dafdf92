# Overview: Service-layer operations for POS checkout; encapsulates business logic and database work.

"""
Checkout / Ledger Poster

WHY: A sale touches many tables (transaction, items, product stock, client
ledger and balance, loyalty, staff commission). They are written in ONE
database transaction: either every effect is visible or none is.

DESIGN:
- Cart lines are a tagged union: ProductLine | ServiceLine
  - product lines decrement stock (guarded, never below zero)
  - service lines form the commission base
- All validation that needs no database runs before the transaction opens
- Balances, stock and loyalty change through atomic relative UPDATEs
- Amounts are integer cents; derived amounts round half-up

LEDGER RULES:
- credit sale: "credit" entry for the unpaid remainder (+ credit balance),
  plus a "purchase" entry for the amount paid now, if any
- cash/card sale with a client: "purchase" entry for the total
- loyalty is earned only on money actually paid: floor(paid / 10) points

VISIT SETTLEMENT:
A sale linked to an appointment credits the visit only if the appointment
has not been credited yet, and marks it credited.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal, InvalidOperation

from ..extensions import db
from ..models import (
    Appointment,
    Client,
    ClientPayment,
    Product,
    Service,
    Staff,
    StaffPayment,
    Transaction,
    TransactionItem,
)
from ..models.clients import CLIENT_PAYMENT_CREDIT, CLIENT_PAYMENT_PURCHASE
from ..models.sales import (
    ITEM_TYPE_PRODUCT,
    ITEM_TYPE_SERVICE,
    PAYMENT_METHOD_CREDIT,
    PAYMENT_METHODS,
    PAYMENT_STATUS_PAID,
    PAYMENT_STATUS_PENDING,
)
from ..models.staff import SALARY_COMMISSION, STAFF_PAYMENT_COMMISSION
from . import loyalty_service
from .concurrency import atomic_increment, lock_for_update, run_with_retry
from zenstyle.money import percent_of
from zenstyle.time_utils import utcnow


# Error codes
EMPTY_CART = "EMPTY_CART"
INVALID_LINE = "INVALID_LINE"
INVALID_QUANTITY = "INVALID_QUANTITY"
INVALID_PAYMENT_METHOD = "INVALID_PAYMENT_METHOD"
INVALID_DISCOUNT = "INVALID_DISCOUNT"
INVALID_AMOUNT = "INVALID_AMOUNT"
INVALID_PERIOD = "INVALID_PERIOD"
CREDIT_REQUIRES_CLIENT = "CREDIT_REQUIRES_CLIENT"
CLIENT_NOT_FOUND = "CLIENT_NOT_FOUND"
STAFF_NOT_FOUND = "STAFF_NOT_FOUND"
STAFF_INACTIVE = "STAFF_INACTIVE"
ITEM_NOT_FOUND = "ITEM_NOT_FOUND"
ITEM_INACTIVE = "ITEM_INACTIVE"
INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
APPOINTMENT_NOT_FOUND = "APPOINTMENT_NOT_FOUND"
APPOINTMENT_CLIENT_MISMATCH = "APPOINTMENT_CLIENT_MISMATCH"
TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

PERIODS = ("today", "week", "month", "all")


class CheckoutError(Exception):
    """Raised for checkout errors. Nothing is written when it is raised."""
    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


@dataclass(frozen=True)
class ProductLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class ServiceLine:
    service_id: int
    quantity: int


def _as_int(value, field: str) -> int:
    if isinstance(value, bool):
        raise CheckoutError(INVALID_LINE, f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise CheckoutError(INVALID_LINE, f"{field} must be an integer")
    if number != value and not isinstance(value, str):
        raise CheckoutError(INVALID_LINE, f"{field} must be an integer")
    return number


def parse_cart(items) -> list:
    """
    Build typed cart lines from request JSON.

    Each item: {"type": "product"|"service", "id": int, "quantity": int}
    ("item_type"/"item_id" are accepted as aliases).
    """
    if not isinstance(items, list) or not items:
        raise CheckoutError(EMPTY_CART, "Cart is empty")

    lines = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise CheckoutError(INVALID_LINE, "Cart item must be an object", {"index": index})
        item_type = raw.get("type", raw.get("item_type"))
        item_id = _as_int(raw.get("id", raw.get("item_id")), "id")
        quantity = _as_int(raw.get("quantity", 1), "quantity")

        if item_type == ITEM_TYPE_PRODUCT:
            lines.append(ProductLine(product_id=item_id, quantity=quantity))
        elif item_type == ITEM_TYPE_SERVICE:
            lines.append(ServiceLine(service_id=item_id, quantity=quantity))
        else:
            raise CheckoutError(INVALID_LINE, f"Unknown item type '{item_type}'", {"index": index})
    return lines


def _validate_inputs(cart, payment_method, client_id, discount_percent) -> Decimal:
    if payment_method not in PAYMENT_METHODS:
        raise CheckoutError(
            INVALID_PAYMENT_METHOD,
            f"Unknown payment method '{payment_method}'",
            {"allowed": list(PAYMENT_METHODS)},
        )
    if not cart:
        raise CheckoutError(EMPTY_CART, "Cart is empty")
    for line in cart:
        if not isinstance(line, (ProductLine, ServiceLine)):
            raise CheckoutError(INVALID_LINE, "Unknown cart line")
        if line.quantity <= 0:
            raise CheckoutError(INVALID_QUANTITY, "Quantity must be positive", {"line": repr(line)})

    try:
        discount = Decimal(str(discount_percent if discount_percent is not None else 0))
    except InvalidOperation:
        raise CheckoutError(INVALID_DISCOUNT, "Discount must be a number")
    if discount < 0 or discount > 100:
        raise CheckoutError(INVALID_DISCOUNT, "Discount must be between 0 and 100", {"discount_percent": str(discount)})

    if payment_method == PAYMENT_METHOD_CREDIT and client_id is None:
        raise CheckoutError(CREDIT_REQUIRES_CLIENT, "A client is required for credit sales")
    return discount


def _build_items(cart) -> list[TransactionItem]:
    items = []
    for line in cart:
        if isinstance(line, ProductLine):
            entity = db.session.query(Product).filter_by(id=line.product_id).first()
            item_type, item_id = ITEM_TYPE_PRODUCT, line.product_id
        else:
            entity = db.session.query(Service).filter_by(id=line.service_id).first()
            item_type, item_id = ITEM_TYPE_SERVICE, line.service_id

        if entity is None:
            raise CheckoutError(ITEM_NOT_FOUND, f"{item_type.capitalize()} not found", {"item_type": item_type, "item_id": item_id})
        if not entity.is_active:
            raise CheckoutError(ITEM_INACTIVE, f"{item_type.capitalize()} is not active", {"item_type": item_type, "item_id": item_id})

        items.append(
            TransactionItem(
                item_type=item_type,
                item_id=item_id,
                name_ar=entity.name_ar,
                name_fr=entity.name_fr,
                quantity=line.quantity,
                unit_price_cents=entity.price_cents,
                total_cents=entity.price_cents * line.quantity,
            )
        )
    return items


def _decrement_stock(cart) -> None:
    requested: dict[int, int] = {}
    for line in cart:
        if isinstance(line, ProductLine):
            requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    for product_id, quantity in sorted(requested.items()):
        updated = atomic_increment(Product, product_id, guard=Product.stock >= quantity, stock=-quantity)
        if not updated:
            available = db.session.query(Product.stock).filter(Product.id == product_id).scalar()
            raise CheckoutError(
                INSUFFICIENT_STOCK,
                "Not enough stock",
                {"product_id": product_id, "requested": quantity, "available": available},
            )


def post_sale(
    *,
    cart,
    payment_method: str,
    client_id: int | None = None,
    staff_id: int | None = None,
    discount_percent=0,
    amount_paid: int | None = None,
    appointment_id: int | None = None,
    notes: str | None = None,
) -> Transaction:
    """
    Post a POS sale and all of its side effects atomically.

    Args:
        cart: list of ProductLine / ServiceLine
        payment_method: cash | card | credit
        client_id: Required for credit sales
        staff_id: Staff credited with the sale (commission)
        discount_percent: 0-100, applied to the subtotal
        amount_paid: Money received now (credit sales); clamped to [0, total].
            Cash and card sales are paid in full.
        appointment_id: Visit being checked out, for visit settlement

    Returns:
        The committed Transaction

    Raises:
        CheckoutError: with a stable code; the database is left untouched
    """
    discount = _validate_inputs(cart, payment_method, client_id, discount_percent)
    if amount_paid is not None and (isinstance(amount_paid, bool) or not isinstance(amount_paid, int)):
        raise CheckoutError(INVALID_AMOUNT, "amount_paid must be an integer amount in cents")

    def _op():
        client = None
        if client_id is not None:
            client = db.session.query(Client).filter_by(id=client_id).first()
            if client is None:
                raise CheckoutError(CLIENT_NOT_FOUND, "Client not found", {"client_id": client_id})

        staff = None
        if staff_id is not None:
            staff = db.session.query(Staff).filter_by(id=staff_id).first()
            if staff is None:
                raise CheckoutError(STAFF_NOT_FOUND, "Staff member not found", {"staff_id": staff_id})
            if not staff.is_active:
                raise CheckoutError(STAFF_INACTIVE, "Staff member is not active", {"staff_id": staff_id})

        appointment = None
        if appointment_id is not None:
            appointment = lock_for_update(db.session.query(Appointment).filter_by(id=appointment_id)).first()
            if appointment is None:
                raise CheckoutError(APPOINTMENT_NOT_FOUND, "Appointment not found", {"appointment_id": appointment_id})
            if client_id is not None and appointment.client_id != client_id:
                raise CheckoutError(
                    APPOINTMENT_CLIENT_MISMATCH,
                    "Appointment belongs to a different client",
                    {"appointment_id": appointment_id, "client_id": client_id},
                )

        items = _build_items(cart)
        subtotal = sum(item.total_cents for item in items)
        discount_cents = percent_of(subtotal, discount)
        total = subtotal - discount_cents

        if payment_method == PAYMENT_METHOD_CREDIT:
            paid = min(max(amount_paid or 0, 0), total)
        else:
            paid = total
        remaining = total - paid

        transaction = Transaction(
            client_id=client_id,
            staff_id=staff_id,
            appointment_id=appointment_id,
            subtotal_cents=subtotal,
            discount_percent=discount,
            discount_cents=discount_cents,
            tax_cents=0,
            total_cents=total,
            amount_paid_cents=paid,
            payment_method=payment_method,
            payment_status=PAYMENT_STATUS_PAID if remaining == 0 else PAYMENT_STATUS_PENDING,
            notes=notes,
        )
        transaction.items.extend(items)
        db.session.add(transaction)
        db.session.flush()
        reference = str(transaction.id)

        _decrement_stock(cart)

        # Commission base is service revenue before discount
        services_total = sum(i.total_cents for i in items if i.item_type == ITEM_TYPE_SERVICE)
        if staff is not None and staff.salary_type == SALARY_COMMISSION and (staff.commission_rate or 0) > 0 and services_total > 0:
            commission = percent_of(services_total, staff.commission_rate)
            if commission > 0:
                db.session.add(
                    StaffPayment(
                        staff_id=staff.id,
                        type=STAFF_PAYMENT_COMMISSION,
                        amount_cents=commission,
                        description=f"Commission - Transaction #{reference}",
                        reference_id=reference,
                    )
                )

        if client is not None:
            if payment_method == PAYMENT_METHOD_CREDIT:
                if remaining > 0:
                    db.session.add(
                        ClientPayment(
                            client_id=client.id,
                            type=CLIENT_PAYMENT_CREDIT,
                            amount_cents=remaining,
                            description=f"Credit - Transaction #{reference}",
                            reference_id=reference,
                        )
                    )
                    atomic_increment(Client, client.id, credit_balance_cents=remaining)
                if paid > 0:
                    db.session.add(
                        ClientPayment(
                            client_id=client.id,
                            type=CLIENT_PAYMENT_PURCHASE,
                            amount_cents=paid,
                            description=f"Partial payment - Transaction #{reference}",
                            reference_id=reference,
                        )
                    )
            else:
                db.session.add(
                    ClientPayment(
                        client_id=client.id,
                        type=CLIENT_PAYMENT_PURCHASE,
                        amount_cents=total,
                        description=f"Purchase - Transaction #{reference}",
                        reference_id=reference,
                    )
                )

            already_settled = appointment is not None and appointment.loyalty_awarded
            if paid > 0 and not already_settled:
                loyalty_service.award_visit(
                    client.id,
                    amount_cents=paid,
                    points=loyalty_service.sale_points(paid),
                )
                if appointment is not None:
                    appointment.loyalty_awarded = True

        db.session.commit()
        return transaction

    return run_with_retry(_op)


def get_transaction(transaction_id: int) -> Transaction:
    transaction = db.session.query(Transaction).filter_by(id=transaction_id).first()
    if transaction is None:
        raise CheckoutError(TRANSACTION_NOT_FOUND, "Transaction not found", {"transaction_id": transaction_id})
    return transaction


def list_transactions(period: str = "all", *, limit: int | None = None) -> list[Transaction]:
    """Transactions newest first, filtered to today / the last 7 days / the last 30 days / all."""
    if period not in PERIODS:
        raise CheckoutError(INVALID_PERIOD, f"Unknown period '{period}'", {"allowed": list(PERIODS)})

    query = db.session.query(Transaction)
    now = utcnow()
    if period == "today":
        query = query.filter(Transaction.created_at >= now.replace(hour=0, minute=0, second=0, microsecond=0))
    elif period == "week":
        query = query.filter(Transaction.created_at >= now - timedelta(days=7))
    elif period == "month":
        query = query.filter(Transaction.created_at >= now - timedelta(days=30))

    query = query.order_by(Transaction.created_at.desc(), Transaction.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()
