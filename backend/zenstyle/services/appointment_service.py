# Overview: Service-layer operations for appointments; encapsulates business logic and database work.

"""
Appointment Lifecycle Service

LIFECYCLE:
    confirmed -> in-progress -> completed
    confirmed -> completed | cancelled | no-show
completed, cancelled and no-show are terminal.

WHY: Creating or editing an appointment is a check-then-write on a staff
member's calendar. The staff row is locked (and its version bumped, which
takes the SQLite writer lock) before the conflict scan, so two bookings for
the same staff member are serialized and the later one sees the earlier.

DESIGN:
- end_time is always derived from the booked services' durations
- Each booked service captures price_at_booking once; total_amount is their sum
- Completion credits the visit to the client exactly once (loyalty_awarded),
  shared with POS checkout via the same flag
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Appointment, AppointmentService, Client, Service, Staff, Transaction
from ..models.appointments import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_IN_PROGRESS,
    APPOINTMENT_NO_SHOW,
    APPOINTMENT_STATUSES,
)
from . import loyalty_service, settings_service
from .availability_service import AvailabilityError, check_interval, end_time_for
from .concurrency import atomic_increment, lock_for_update, run_with_retry
from zenstyle.time_utils import parse_date, parse_hhmm, utcnow


ALLOWED_TRANSITIONS = {
    APPOINTMENT_CONFIRMED: {APPOINTMENT_IN_PROGRESS, APPOINTMENT_COMPLETED, APPOINTMENT_CANCELLED, APPOINTMENT_NO_SHOW},
    APPOINTMENT_IN_PROGRESS: {APPOINTMENT_COMPLETED},
    APPOINTMENT_COMPLETED: set(),
    APPOINTMENT_CANCELLED: set(),
    APPOINTMENT_NO_SHOW: set(),
}

UPCOMING_STATUSES = (APPOINTMENT_CONFIRMED, APPOINTMENT_IN_PROGRESS)

# Distinguishes "leave unchanged" from an explicit None (e.g. unassign staff)
UNSET = object()


class AppointmentError(Exception):
    """Raised for appointment validation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class AppointmentNotFoundError(AppointmentError):
    pass


class AppointmentStateError(AppointmentError):
    """Raised for a status transition the lifecycle does not allow."""
    pass


def _parse_when(day, start_time) -> tuple[date, str]:
    try:
        return parse_date(day), parse_hhmm(start_time)
    except (TypeError, ValueError) as exc:
        raise AppointmentError(f"Invalid date or time: {exc}") from exc


def _load_services(service_ids) -> list[Service]:
    if not service_ids:
        raise AppointmentError("At least one service is required")
    try:
        ids = [int(sid) for sid in service_ids]
    except (TypeError, ValueError) as exc:
        raise AppointmentError("service_ids must be integers") from exc

    found = {s.id: s for s in db.session.query(Service).filter(Service.id.in_(ids)).all()}
    services = []
    for sid in ids:
        service = found.get(sid)
        if service is None:
            raise AppointmentError("Service not found", {"service_id": sid})
        if not service.is_active:
            raise AppointmentError("Service is not active", {"service_id": sid})
        services.append(service)
    return services


def _require_client(client_id) -> Client:
    client = db.session.query(Client).filter_by(id=client_id).first() if client_id is not None else None
    if client is None:
        raise AppointmentError("Client not found", {"client_id": client_id})
    return client


def _claim_staff_calendar(staff_id: int) -> Staff:
    """
    Lock the staff row for the rest of the transaction.

    The version bump is a write, so on SQLite it takes the database writer
    lock before the conflict scan runs.
    """
    staff = lock_for_update(db.session.query(Staff).filter_by(id=staff_id)).first()
    if staff is None:
        raise AppointmentError("Staff member not found", {"staff_id": staff_id})
    if not staff.is_active:
        raise AppointmentError("Staff member is not active", {"staff_id": staff_id})
    atomic_increment(Staff, staff_id)
    return staff


def _get_for_update(appointment_id: int) -> Appointment:
    appointment = lock_for_update(db.session.query(Appointment).filter_by(id=appointment_id)).first()
    if appointment is None:
        raise AppointmentNotFoundError("Appointment not found", {"appointment_id": appointment_id})
    return appointment


def _replace_services(appointment: Appointment, services: list[Service]) -> None:
    appointment.services.clear()
    for service in services:
        appointment.services.append(
            AppointmentService(service_id=service.id, price_at_booking_cents=service.price_cents)
        )
    appointment.total_amount_cents = sum(s.price_cents for s in services)


def create_appointment(
    *,
    client_id: int,
    service_ids,
    date,
    start_time: str,
    staff_id: int | None = None,
    notes: str | None = None,
    hours=None,
) -> Appointment:
    """
    Book an appointment after working-hours and conflict validation.

    Args:
        client_id: Client being booked
        service_ids: One or more service ids; durations are summed
        date: Calendar date (date or "YYYY-MM-DD")
        start_time: "HH:MM"
        staff_id: Optional staff member; unassigned bookings skip the conflict scan
        notes: Free text
        hours: Working-hours snapshot (read from settings when omitted)

    Raises:
        AvailabilityError: CLOSED_DAY, OUTSIDE_HOURS, EXCEEDS_CLOSING,
            SLOT_CONFLICT or INVALID_TIME
        AppointmentError: unknown client/staff/service or bad input
    """
    hours = hours if hours is not None else settings_service.get_working_hours()

    def _op():
        _require_client(client_id)
        appointment = stage_appointment(
            hours,
            client_id=client_id,
            staff_id=staff_id,
            service_ids=service_ids,
            date=date,
            start_time=start_time,
            notes=notes,
        )
        db.session.commit()
        return appointment

    return run_with_retry(_op)


def stage_appointment(hours, *, client_id: int, staff_id, service_ids, date, start_time, notes=None) -> Appointment:
    """
    Validate and add an appointment to the current session without committing.

    Callers own the transaction (create_appointment, public booking).
    """
    day, start = _parse_when(date, start_time)
    services = _load_services(service_ids)
    end = end_time_for(start, sum(s.duration for s in services))

    if staff_id is not None:
        _claim_staff_calendar(staff_id)
    check_interval(hours, staff_id=staff_id, day=day, start_time=start, end_time=end)

    appointment = Appointment(
        client_id=client_id,
        staff_id=staff_id,
        date=day,
        start_time=start,
        end_time=end,
        status=APPOINTMENT_CONFIRMED,
        notes=notes,
    )
    _replace_services(appointment, services)
    db.session.add(appointment)
    db.session.flush()
    return appointment


def update_appointment(
    appointment_id: int,
    *,
    client_id=UNSET,
    staff_id=UNSET,
    service_ids=UNSET,
    date=UNSET,
    start_time=UNSET,
    notes=UNSET,
    hours=None,
) -> Appointment:
    """
    Edit an appointment and re-run availability with its own id excluded.

    Changing services re-captures their current prices. Terminal
    appointments cannot be edited.
    """
    hours = hours if hours is not None else settings_service.get_working_hours()

    def _op():
        appointment = _get_for_update(appointment_id)
        if appointment.is_terminal:
            raise AppointmentStateError(
                f"Cannot edit a {appointment.status} appointment",
                {"appointment_id": appointment_id, "status": appointment.status},
            )

        new_day = appointment.date if date is UNSET else date
        new_start = appointment.start_time if start_time is UNSET else start_time
        new_day, new_start = _parse_when(new_day, new_start)
        new_staff_id = appointment.staff_id if staff_id is UNSET else staff_id

        if service_ids is UNSET:
            services = None
            duration = sum(link.service.duration for link in appointment.services)
        else:
            services = _load_services(service_ids)
            duration = sum(s.duration for s in services)
        new_end = end_time_for(new_start, duration)

        if client_id is not UNSET:
            _require_client(client_id)
            appointment.client_id = client_id

        if new_staff_id is not None:
            _claim_staff_calendar(new_staff_id)
        check_interval(
            hours,
            staff_id=new_staff_id,
            day=new_day,
            start_time=new_start,
            end_time=new_end,
            exclude_appointment_id=appointment.id,
        )

        appointment.staff_id = new_staff_id
        appointment.date = new_day
        appointment.start_time = new_start
        appointment.end_time = new_end
        if services is not None:
            _replace_services(appointment, services)
        if notes is not UNSET:
            appointment.notes = notes

        db.session.commit()
        return appointment

    return run_with_retry(_op)


def _settle_visit(appointment: Appointment) -> None:
    """Credit the visit to the client once; POS checkout uses the same flag."""
    if appointment.loyalty_awarded or appointment.client_id is None:
        return
    amount = appointment.total_amount_cents or 0
    loyalty_service.award_visit(
        appointment.client_id,
        amount_cents=amount,
        points=loyalty_service.visit_points(amount),
    )
    appointment.loyalty_awarded = True


def update_status(appointment_id: int, status: str) -> Appointment:
    """
    Move an appointment along its lifecycle.

    Completing an appointment settles the visit (loyalty, spend, visit count,
    tier) unless a POS sale already did.

    Raises:
        AppointmentNotFoundError, AppointmentStateError, AppointmentError
    """
    if status not in APPOINTMENT_STATUSES:
        raise AppointmentError(f"Unknown status '{status}'", {"allowed": list(APPOINTMENT_STATUSES)})

    def _op():
        appointment = _get_for_update(appointment_id)
        if status not in ALLOWED_TRANSITIONS.get(appointment.status, set()):
            raise AppointmentStateError(
                f"Cannot change appointment from {appointment.status} to {status}",
                {"appointment_id": appointment_id, "from": appointment.status, "to": status},
            )

        appointment.status = status
        if status == APPOINTMENT_COMPLETED:
            _settle_visit(appointment)

        db.session.commit()
        return appointment

    return run_with_retry(_op)


def start_appointment(appointment_id: int) -> Appointment:
    return update_status(appointment_id, APPOINTMENT_IN_PROGRESS)


def complete_appointment(appointment_id: int) -> Appointment:
    return update_status(appointment_id, APPOINTMENT_COMPLETED)


def cancel_appointment(appointment_id: int) -> Appointment:
    return update_status(appointment_id, APPOINTMENT_CANCELLED)


def mark_no_show(appointment_id: int) -> Appointment:
    return update_status(appointment_id, APPOINTMENT_NO_SHOW)


def delete_appointment(appointment_id: int) -> None:
    """Hard delete an erroneous entry together with its service rows."""
    def _op():
        appointment = _get_for_update(appointment_id)
        db.session.query(Transaction).filter_by(appointment_id=appointment.id).update(
            {"appointment_id": None}, synchronize_session=False
        )
        db.session.delete(appointment)
        db.session.commit()

    run_with_retry(_op)


def get_appointment(appointment_id: int) -> Appointment:
    appointment = db.session.query(Appointment).filter_by(id=appointment_id).first()
    if appointment is None:
        raise AppointmentNotFoundError("Appointment not found", {"appointment_id": appointment_id})
    return appointment


def list_appointments_for_date(day, staff_id: int | None = None) -> list[Appointment]:
    day = parse_date(day)
    query = db.session.query(Appointment).filter(Appointment.date == day)
    if staff_id is not None:
        query = query.filter(Appointment.staff_id == staff_id)
    return query.order_by(Appointment.start_time.asc(), Appointment.id.asc()).all()


def list_upcoming_appointments(*, from_date=None, limit: int = 20) -> list[Appointment]:
    """Confirmed or in-progress appointments from from_date (default today) onwards."""
    day = parse_date(from_date) if from_date is not None else utcnow().date()
    return (
        db.session.query(Appointment)
        .filter(Appointment.date >= day, Appointment.status.in_(UPCOMING_STATUSES))
        .order_by(Appointment.date.asc(), Appointment.start_time.asc())
        .limit(limit)
        .all()
    )


__all__ = [
    "AppointmentError",
    "AppointmentNotFoundError",
    "AppointmentStateError",
    "AvailabilityError",
    "create_appointment",
    "update_appointment",
    "update_status",
    "start_appointment",
    "complete_appointment",
    "cancel_appointment",
    "mark_no_show",
    "delete_appointment",
    "get_appointment",
    "list_appointments_for_date",
    "list_upcoming_appointments",
]
