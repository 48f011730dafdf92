from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z, to_iso_date


SALARY_MONTHLY = "monthly"
SALARY_COMMISSION = "commission"
SALARY_TYPES = (SALARY_MONTHLY, SALARY_COMMISSION)

STAFF_PAYMENT_SALARY = "salary"
STAFF_PAYMENT_COMMISSION = "commission"
STAFF_PAYMENT_ADVANCE = "advance"
STAFF_PAYMENT_BONUS = "bonus"
STAFF_PAYMENT_DEDUCTION = "deduction"

# Amounts the salon owes the staff member
STAFF_DUE_TYPES = (STAFF_PAYMENT_SALARY, STAFF_PAYMENT_COMMISSION, STAFF_PAYMENT_BONUS)
# Amounts already handed out or withheld
STAFF_PAID_TYPES = (STAFF_PAYMENT_ADVANCE, STAFF_PAYMENT_DEDUCTION)
STAFF_PAYMENT_TYPES = STAFF_DUE_TYPES + STAFF_PAID_TYPES


class Staff(db.Model):
    """
    Salon employee.

    salary_type decides how pay accrues:
    - monthly: base_salary_cents
    - commission: commission_rate percent of service revenue per sale

    is_active gates booking and checkout eligibility.
    """
    __tablename__ = "staff"
    __table_args__ = (
        db.Index("ix_staff_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    first_name = db.Column(db.String(128), nullable=False)
    last_name = db.Column(db.String(128), nullable=False, default="")
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    specialties = db.Column(db.JSON, nullable=False, default=list)

    commission_rate = db.Column(db.Numeric(5, 2), nullable=False, default=0)
    base_salary_cents = db.Column(db.Integer, nullable=False, default=0)
    salary_type = db.Column(db.String(16), nullable=False, default=SALARY_MONTHLY)

    hire_date = db.Column(db.Date, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Personal schedule {day: {start, end, isWorking}}; profile data only
    working_hours = db.Column(db.JSON, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<Staff id={self.id} name={self.full_name!r} salary_type={self.salary_type}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "phone": self.phone,
            "email": self.email,
            "specialties": list(self.specialties or []),
            "commission_rate": float(self.commission_rate or 0),
            "base_salary_cents": self.base_salary_cents,
            "salary_type": self.salary_type,
            "hire_date": to_iso_date(self.hire_date),
            "is_active": self.is_active,
            "working_hours": self.working_hours,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class StaffPayment(db.Model):
    """
    Append-only staff pay ledger.

    balance = sum(salary, commission, bonus) - sum(advance, deduction)
    """
    __tablename__ = "staff_payments"
    __table_args__ = (
        db.Index("ix_staff_payments_staff_created", "staff_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=False, index=True)

    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=True)
    reference_id = db.Column(db.String(64), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    staff = db.relationship("Staff", backref=db.backref("payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "staff_id": self.staff_id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "description": self.description,
            "reference_id": self.reference_id,
            "created_at": to_utc_z(self.created_at),
        }
