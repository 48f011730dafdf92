# Overview: Flask API routes for appointment operations; parses input and returns JSON responses.

"""
Appointment Routes

Availability failures return 400 with a stable code (CLOSED_DAY,
OUTSIDE_HOURS, EXCEEDS_CLOSING, INVALID_TIME), except SLOT_CONFLICT which
returns 409.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import appointment_service, availability_service, settings_service
from ..services.appointment_service import (
    UNSET,
    AppointmentError,
    AppointmentNotFoundError,
    AppointmentStateError,
)
from ..services.availability_service import SLOT_CONFLICT, AvailabilityError
from zenstyle.time_utils import parse_date, parse_hhmm


appointments_bp = Blueprint("appointments", __name__, url_prefix="/api/appointments")


def availability_error_response(e: AvailabilityError):
    status = 409 if e.code == SLOT_CONFLICT else 400
    return jsonify({"error": str(e), "code": e.code, "details": e.details}), status


def appointment_error_response(e: AppointmentError):
    if isinstance(e, AppointmentNotFoundError):
        return jsonify({"error": str(e), "details": e.details}), 404
    if isinstance(e, AppointmentStateError):
        return jsonify({"error": str(e), "code": "INVALID_TRANSITION", "details": e.details}), 409
    return jsonify({"error": str(e), "details": e.details}), 400


@appointments_bp.get("")
def list_appointments_route():
    """
    List appointments of one day.

    Query parameters:
    - date: YYYY-MM-DD (required)
    - staff_id: optional filter
    """
    day = request.args.get("date")
    if not day:
        return jsonify({"error": "date is required"}), 400
    try:
        appointments = appointment_service.list_appointments_for_date(
            day, staff_id=request.args.get("staff_id", type=int)
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [a.to_dict() for a in appointments], "count": len(appointments)})


@appointments_bp.get("/upcoming")
def upcoming_appointments_route():
    limit = max(1, min(request.args.get("limit", 20, type=int), 200))
    try:
        appointments = appointment_service.list_upcoming_appointments(
            from_date=request.args.get("from"), limit=limit
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    return jsonify({"items": [a.to_dict() for a in appointments], "count": len(appointments)})


@appointments_bp.get("/slots")
def slots_route():
    """Working-hours slot starts for a date (30-minute steps)."""
    try:
        day = parse_date(request.args.get("date"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    hours = settings_service.get_working_hours()
    return jsonify({"date": day.isoformat(), "slots": availability_service.slots_for_day(hours, day)})


@appointments_bp.get("/availability")
def availability_route():
    """
    Check whether an interval can be booked.

    Query parameters: staff_id, date, start_time, end_time, exclude_id
    """
    try:
        day = parse_date(request.args.get("date"))
        start = parse_hhmm(request.args.get("start_time"))
        end = parse_hhmm(request.args.get("end_time"))
    except ValueError as e:
        return jsonify({"error": str(e)}), 400

    staff_id = request.args.get("staff_id", type=int)
    hours = settings_service.get_working_hours()
    try:
        availability_service.check_interval(
            hours,
            staff_id=staff_id,
            day=day,
            start_time=start,
            end_time=end,
            exclude_appointment_id=request.args.get("exclude_id", type=int),
        )
    except AvailabilityError as e:
        return jsonify({"available": False, "code": e.code, "error": str(e), "details": e.details})
    return jsonify({"available": True})


@appointments_bp.post("")
def create_appointment_route():
    """
    Book an appointment.

    Request body:
    {
        "client_id": 1,            // required
        "service_ids": [1, 2],     // required
        "date": "2024-06-10",      // required
        "start_time": "09:00",     // required
        "staff_id": 3,             // optional
        "notes": "..."             // optional
    }
    """
    data = request.get_json(silent=True) or {}

    missing = [f for f in ("client_id", "service_ids", "date", "start_time") if data.get(f) in (None, "", [])]
    if missing:
        return jsonify({"error": f"Missing required fields: {', '.join(missing)}"}), 400

    try:
        appointment = appointment_service.create_appointment(
            client_id=data["client_id"],
            service_ids=data["service_ids"],
            date=data["date"],
            start_time=data["start_time"],
            staff_id=data.get("staff_id"),
            notes=data.get("notes"),
        )
        return jsonify(appointment.to_dict()), 201
    except AvailabilityError as e:
        return availability_error_response(e)
    except AppointmentError as e:
        return appointment_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create appointment")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.get("/<int:appointment_id>")
def get_appointment_route(appointment_id: int):
    try:
        appointment = appointment_service.get_appointment(appointment_id)
    except AppointmentError as e:
        return appointment_error_response(e)
    return jsonify(appointment.to_dict())


@appointments_bp.patch("/<int:appointment_id>")
def update_appointment_route(appointment_id: int):
    data = request.get_json(silent=True) or {}
    fields = ("client_id", "staff_id", "service_ids", "date", "start_time", "notes")
    changes = {f: data[f] if f in data else UNSET for f in fields}

    try:
        appointment = appointment_service.update_appointment(appointment_id, **changes)
        return jsonify(appointment.to_dict())
    except AvailabilityError as e:
        return availability_error_response(e)
    except AppointmentError as e:
        return appointment_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update appointment")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.post("/<int:appointment_id>/status")
def update_status_route(appointment_id: int):
    """Body: {"status": "in-progress" | "completed" | "cancelled" | "no-show"}"""
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not status:
        return jsonify({"error": "status is required"}), 400

    try:
        appointment = appointment_service.update_status(appointment_id, status)
        return jsonify(appointment.to_dict())
    except AppointmentError as e:
        return appointment_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update appointment status")
        return jsonify({"error": "Internal server error"}), 500


@appointments_bp.delete("/<int:appointment_id>")
def delete_appointment_route(appointment_id: int):
    try:
        appointment_service.delete_appointment(appointment_id)
        return jsonify({"deleted": True, "id": appointment_id})
    except AppointmentError as e:
        return appointment_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete appointment")
        return jsonify({"error": "Internal server error"}), 500
