# Overview: Service-layer operations for staff; encapsulates business logic and database work.

"""
Staff Service

WHY: Staff pay is an append-only ledger. The balance owed to a staff member is
derived from it on read, never stored:
    total_due  = salary + commission + bonus
    total_paid = advance + deduction
    balance    = total_due - total_paid
"""

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Staff, StaffPayment
from ..models.staff import STAFF_DUE_TYPES, STAFF_PAID_TYPES, STAFF_PAYMENT_TYPES
from ..validation import ModelValidationPolicy


STAFF_POLICY = ModelValidationPolicy(
    writable_fields={
        "first_name",
        "last_name",
        "phone",
        "email",
        "specialties",
        "commission_rate",
        "base_salary_cents",
        "salary_type",
        "hire_date",
        "working_hours",
    },
    required_on_create={"first_name", "salary_type"},
)


class StaffError(Exception):
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class StaffNotFoundError(StaffError):
    pass


def create_staff(patch: dict) -> Staff:
    staff = Staff(**patch)
    if staff.last_name is None:
        staff.last_name = ""
    if staff.specialties is None:
        staff.specialties = []
    staff.is_active = True
    db.session.add(staff)
    db.session.commit()
    return staff


def update_staff(staff_id: int, patch: dict) -> Staff:
    staff = get_staff(staff_id)
    for key, value in patch.items():
        setattr(staff, key, value)
    db.session.commit()
    return staff


def set_staff_active(staff_id: int, is_active: bool) -> Staff:
    """Deactivated staff keep their history but can no longer be booked or sell."""
    staff = get_staff(staff_id)
    staff.is_active = bool(is_active)
    db.session.commit()
    return staff


def get_staff(staff_id: int) -> Staff:
    staff = db.session.query(Staff).filter_by(id=staff_id).first()
    if staff is None:
        raise StaffNotFoundError("Staff member not found", {"staff_id": staff_id})
    return staff


def list_staff(*, active_only: bool = False) -> list[Staff]:
    query = db.session.query(Staff)
    if active_only:
        query = query.filter(Staff.is_active.is_(True))
    return query.order_by(Staff.first_name.asc(), Staff.last_name.asc()).all()


def add_staff_payment(
    staff_id: int,
    *,
    type: str,
    amount_cents: int,
    description: str | None = None,
    reference_id: str | None = None,
) -> StaffPayment:
    if type not in STAFF_PAYMENT_TYPES:
        raise StaffError(f"Unknown payment type '{type}'", {"allowed": list(STAFF_PAYMENT_TYPES)})
    if isinstance(amount_cents, bool) or not isinstance(amount_cents, int) or amount_cents <= 0:
        raise StaffError("Payment amount must be a positive integer amount in cents")
    get_staff(staff_id)

    payment = StaffPayment(
        staff_id=staff_id,
        type=type,
        amount_cents=amount_cents,
        description=description,
        reference_id=reference_id,
    )
    db.session.add(payment)
    db.session.commit()
    return payment


def list_staff_payments(staff_id: int) -> list[StaffPayment]:
    get_staff(staff_id)
    return (
        db.session.query(StaffPayment)
        .filter_by(staff_id=staff_id)
        .order_by(StaffPayment.created_at.desc(), StaffPayment.id.desc())
        .all()
    )


def staff_balance(staff_id: int) -> dict:
    get_staff(staff_id)
    rows = (
        db.session.query(StaffPayment.type, func.coalesce(func.sum(StaffPayment.amount_cents), 0))
        .filter(StaffPayment.staff_id == staff_id)
        .group_by(StaffPayment.type)
        .all()
    )
    by_type = {payment_type: int(total) for payment_type, total in rows}
    total_due = sum(by_type.get(t, 0) for t in STAFF_DUE_TYPES)
    total_paid = sum(by_type.get(t, 0) for t in STAFF_PAID_TYPES)
    return {
        "staff_id": staff_id,
        "total_due_cents": total_due,
        "total_paid_cents": total_paid,
        "balance_cents": total_due - total_paid,
        "by_type": {t: by_type.get(t, 0) for t in STAFF_PAYMENT_TYPES},
    }
