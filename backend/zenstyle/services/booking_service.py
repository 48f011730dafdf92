# Overview: Service-layer operations for public self-booking; encapsulates business logic and database work.

"""
Public Booking Service

WHY: Clients book themselves without an account. They are identified by
phone number; an unknown phone creates a new client record.

DESIGN:
- Bookings go through appointment_service.stage_appointment, so public
  bookings get the same working-hours and conflict checks as the back office
- The confirmation webhook is sent only after the booking has committed and
  its failure never affects the booking
"""

from __future__ import annotations

import httpx
from flask import current_app

from ..extensions import db
from ..models import Client, Service, Staff
from . import settings_service
from .appointment_service import AppointmentError, stage_appointment
from .availability_service import AvailabilityError, available_start_times
from .concurrency import run_with_retry
from zenstyle.time_utils import parse_date, parse_hhmm


PUBLIC_CLIENT_LAST_NAME = "N/A"
DEFAULT_DURATION_MINUTES = 60


class BookingError(Exception):
    """Raised for invalid public booking requests."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def public_services() -> list[Service]:
    return (
        db.session.query(Service)
        .filter(Service.is_active.is_(True))
        .order_by(Service.category.asc(), Service.name_fr.asc())
        .all()
    )


def public_staff() -> list[Staff]:
    return (
        db.session.query(Staff)
        .filter(Staff.is_active.is_(True))
        .order_by(Staff.first_name.asc(), Staff.last_name.asc())
        .all()
    )


def _service_duration(service_id) -> int:
    if service_id is None:
        return DEFAULT_DURATION_MINUTES
    service = db.session.query(Service).filter_by(id=service_id, is_active=True).first()
    if service is None:
        raise BookingError("Service not found", {"service_id": service_id})
    return service.duration or DEFAULT_DURATION_MINUTES


def available_times(day, *, staff_id: int | None = None, service_id: int | None = None) -> list[str]:
    """Bookable start times on day for the staff member and service duration."""
    try:
        day = parse_date(day)
    except ValueError as exc:
        raise BookingError(str(exc)) from exc
    hours = settings_service.get_working_hours()
    return available_start_times(
        hours,
        staff_id=staff_id,
        day=day,
        duration_minutes=_service_duration(service_id),
    )


def find_or_create_client(*, name: str, phone: str) -> Client:
    """Look up a client by phone, creating one when unknown. Does not commit."""
    client = (
        db.session.query(Client)
        .filter(Client.phone == phone)
        .order_by(Client.id.asc())
        .first()
    )
    if client is not None:
        return client

    client = Client(first_name=name, last_name=PUBLIC_CLIENT_LAST_NAME, phone=phone)
    db.session.add(client)
    db.session.flush()
    return client


def book_public(*, name: str, phone: str, service_id: int, date, time: str, staff_id: int | None = None):
    """
    Create a confirmed appointment from the public booking form.

    Raises:
        BookingError: missing name/phone or unknown service
        AvailabilityError: the slot is not bookable
        AppointmentError: staff unknown or inactive
    """
    name = (name or "").strip()
    phone = (phone or "").strip()
    if not name:
        raise BookingError("Name is required")
    if not phone:
        raise BookingError("Phone is required")
    if service_id is None:
        raise BookingError("Service is required")

    hours = settings_service.get_working_hours()

    def _op():
        client = find_or_create_client(name=name, phone=phone)
        appointment = stage_appointment(
            hours,
            client_id=client.id,
            staff_id=staff_id,
            service_ids=[service_id],
            date=date,
            start_time=time,
        )
        db.session.commit()
        return appointment

    appointment = run_with_retry(_op)

    service = appointment.services[0].service
    notify_booking_confirmation(
        phone=phone,
        name=name,
        service=service.name_fr,
        date=appointment.date.isoformat(),
        time=appointment.start_time,
    )
    return appointment


def notify_booking_confirmation(*, phone: str, name: str, service: str, date: str, time: str) -> bool:
    """
    Best-effort POST of the booking to the automation endpoint.

    Returns True when the endpoint accepted the payload. Never raises for
    network or HTTP failures.
    """
    url = current_app.config.get("BOOKING_WEBHOOK_URL")
    if not url:
        return False

    payload = {"phone": phone, "name": name, "service": service, "date": date, "time": time}
    try:
        response = httpx.post(url, json=payload, timeout=current_app.config.get("BOOKING_WEBHOOK_TIMEOUT", 5.0))
        response.raise_for_status()
    except httpx.HTTPError as exc:
        current_app.logger.warning("Booking confirmation webhook failed: %s", exc)
        return False
    return True


__all__ = [
    "AppointmentError",
    "AvailabilityError",
    "BookingError",
    "public_services",
    "public_staff",
    "available_times",
    "find_or_create_client",
    "book_public",
    "notify_booking_confirmation",
]
