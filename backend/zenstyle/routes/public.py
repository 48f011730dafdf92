# Overview: Flask API routes for public self-booking; parses input and returns JSON responses.

"""
Public Booking Routes

Unauthenticated endpoints used by the salon's booking page. Bookings are
validated exactly like back-office bookings.
"""

from flask import Blueprint, current_app, jsonify, request

from ..services import booking_service
from ..services.appointment_service import AppointmentError
from ..services.availability_service import AvailabilityError
from ..services.booking_service import BookingError
from .appointments import appointment_error_response, availability_error_response


public_bp = Blueprint("public", __name__, url_prefix="/api/public/booking")


@public_bp.get("/services")
def public_services_route():
    services = booking_service.public_services()
    return jsonify({"items": [s.to_dict() for s in services]})


@public_bp.get("/staff")
def public_staff_route():
    staff = booking_service.public_staff()
    return jsonify({
        "items": [
            {"id": s.id, "first_name": s.first_name, "last_name": s.last_name, "specialties": list(s.specialties or [])}
            for s in staff
        ]
    })


@public_bp.get("/times")
def public_times_route():
    """Query parameters: date (required), staff_id, service_id"""
    day = request.args.get("date")
    if not day:
        return jsonify({"error": "date is required"}), 400
    try:
        times = booking_service.available_times(
            day,
            staff_id=request.args.get("staff_id", type=int),
            service_id=request.args.get("service_id", type=int),
        )
    except BookingError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    return jsonify({"date": day, "times": times})


@public_bp.post("")
def public_book_route():
    """
    Book from the public page.

    Request body:
    {"name": "...", "phone": "...", "service_id": 1, "staff_id": 2,
     "date": "2024-06-10", "time": "09:00"}
    """
    data = request.get_json(silent=True) or {}
    try:
        appointment = booking_service.book_public(
            name=data.get("name"),
            phone=data.get("phone"),
            service_id=data.get("service_id"),
            staff_id=data.get("staff_id"),
            date=data.get("date"),
            time=data.get("time"),
        )
        return jsonify(appointment.to_dict()), 201
    except BookingError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except AvailabilityError as e:
        return availability_error_response(e)
    except AppointmentError as e:
        return appointment_error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create public booking")
        return jsonify({"error": "Internal server error"}), 500
