from __future__ import annotations

from ..extensions import db
from zenstyle.time_utils import to_utc_z, to_iso_date


APPOINTMENT_CONFIRMED = "confirmed"
APPOINTMENT_IN_PROGRESS = "in-progress"
APPOINTMENT_COMPLETED = "completed"
APPOINTMENT_CANCELLED = "cancelled"
APPOINTMENT_NO_SHOW = "no-show"

APPOINTMENT_STATUSES = (
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_IN_PROGRESS,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_NO_SHOW,
)

# Cancelled appointments release their slot; every other status occupies it
NON_BLOCKING_STATUSES = (APPOINTMENT_CANCELLED,)
TERMINAL_STATUSES = (APPOINTMENT_COMPLETED, APPOINTMENT_CANCELLED, APPOINTMENT_NO_SHOW)


class Appointment(db.Model):
    """
    A booked time interval for one client with (optionally) one staff member.

    Times are salon-local "HH:MM" strings on a calendar date; end_time is
    always start_time + total service duration and never crosses midnight.

    LIFECYCLE:
    confirmed -> in-progress -> completed
    confirmed -> completed | cancelled | no-show

    loyalty_awarded is set once the visit has been credited to the client,
    either by completion or by a POS sale linked to this appointment.
    """
    __tablename__ = "appointments"
    __table_args__ = (
        db.Index("ix_appointments_staff_date", "staff_id", "date"),
        db.Index("ix_appointments_date_start", "date", "start_time"),
        db.Index("ix_appointments_client_date", "client_id", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("clients.id"), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff.id"), nullable=True)

    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    status = db.Column(db.String(16), nullable=False, default=APPOINTMENT_CONFIRMED, index=True)
    notes = db.Column(db.Text, nullable=True)
    total_amount_cents = db.Column(db.Integer, nullable=False, default=0)
    loyalty_awarded = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    client = db.relationship("Client", backref=db.backref("appointments", lazy=True))
    staff = db.relationship("Staff", backref=db.backref("appointments", lazy=True))
    services = db.relationship(
        "AppointmentService",
        backref="appointment",
        cascade="all, delete-orphan",
        lazy=True,
        order_by="AppointmentService.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def __repr__(self) -> str:
        return (
            f"<Appointment id={self.id} date={self.date} "
            f"{self.start_time}-{self.end_time} staff={self.staff_id} status={self.status}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "client_name": self.client.full_name if self.client else None,
            "client_phone": self.client.phone if self.client else None,
            "staff_id": self.staff_id,
            "staff_name": self.staff.full_name if self.staff else None,
            "date": to_iso_date(self.date),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "status": self.status,
            "notes": self.notes,
            "total_amount_cents": self.total_amount_cents,
            "loyalty_awarded": self.loyalty_awarded,
            "services": [s.to_dict() for s in self.services],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }


class AppointmentService(db.Model):
    """Service booked on an appointment, with its price frozen at booking time."""
    __tablename__ = "appointment_services"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=False, index=True)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False, index=True)

    price_at_booking_cents = db.Column(db.Integer, nullable=False)

    service = db.relationship("Service")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "appointment_id": self.appointment_id,
            "service_id": self.service_id,
            "name_ar": self.service.name_ar if self.service else None,
            "name_fr": self.service.name_fr if self.service else None,
            "duration": self.service.duration if self.service else None,
            "color": self.service.color if self.service else None,
            "price_at_booking_cents": self.price_at_booking_cents,
        }
