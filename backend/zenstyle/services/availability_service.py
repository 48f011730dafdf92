# Overview: Service-layer operations for availability; working-hours checks and staff conflict detection.

"""
Availability Engine

WHY: Every booking path (back office scheduler and public self-booking)
must apply the same rules, so they live here and nowhere else.

RULES:
- A day is closed when it is missing from the working hours or isOpen is false
- start must be within [open, close)
- end must not be after close
- Two appointments of the same staff member on the same date conflict when
  their half-open intervals [start, end) overlap; cancelled appointments
  never block. Back-to-back bookings (A.end == B.start) are allowed.

DESIGN:
- Pure functions take the working-hours snapshot explicitly
- Only find_conflicts / is_slot_available touch the database
"""

from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import Appointment
from ..models.appointments import NON_BLOCKING_STATUSES
from zenstyle.time_utils import (
    hhmm_to_minutes,
    minutes_to_hhmm,
    parse_date,
    parse_hhmm,
    weekday_key,
)


CLOSED_DAY = "CLOSED_DAY"
OUTSIDE_HOURS = "OUTSIDE_HOURS"
EXCEEDS_CLOSING = "EXCEEDS_CLOSING"
SLOT_CONFLICT = "SLOT_CONFLICT"
INVALID_TIME = "INVALID_TIME"

SLOT_STEP_MINUTES = 30


class AvailabilityError(Exception):
    """Raised (or returned) when a requested interval cannot be booked."""
    def __init__(self, code: str, message: str, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


def validate_working_hours(hours, day: date, start_time: str, end_time: str) -> AvailabilityError | None:
    """
    Check an interval against the salon's working hours.

    Returns None when the interval fits, otherwise an AvailabilityError
    describing the first rule that failed.
    """
    day_key = weekday_key(day)
    info = hours.get(day_key) if hours else None
    if not info or not info.get("isOpen"):
        return AvailabilityError(CLOSED_DAY, "The salon is closed on this day", {"day": day_key})

    try:
        open_min = hhmm_to_minutes(info["open"])
        close_min = hhmm_to_minutes(info["close"])
        start_min = hhmm_to_minutes(start_time)
        end_min = hhmm_to_minutes(end_time)
    except (KeyError, ValueError) as exc:
        return AvailabilityError(INVALID_TIME, str(exc))

    if start_min < open_min or start_min >= close_min:
        return AvailabilityError(
            OUTSIDE_HOURS,
            f"Start time must be between {info['open']} and {info['close']}",
            {"open": info["open"], "close": info["close"], "start_time": start_time},
        )
    if end_min > close_min:
        return AvailabilityError(
            EXCEEDS_CLOSING,
            f"Appointment would end after closing time {info['close']}",
            {"close": info["close"], "end_time": end_time},
        )
    return None


def intervals_overlap(a_start: str, a_end: str, b_start: str, b_end: str) -> bool:
    return hhmm_to_minutes(a_start) < hhmm_to_minutes(b_end) and hhmm_to_minutes(a_end) > hhmm_to_minutes(b_start)


def generate_time_slots(open_time: str, close_time: str, step: int = SLOT_STEP_MINUTES) -> list[str]:
    """Slot starts from open (inclusive) to close (exclusive)."""
    if step <= 0:
        raise ValueError("step must be positive")
    current = hhmm_to_minutes(open_time)
    close_min = hhmm_to_minutes(close_time)
    slots = []
    while current < close_min:
        slots.append(minutes_to_hhmm(current))
        current += step
    return slots


def slots_for_day(hours, day: date) -> list[str]:
    info = hours.get(weekday_key(day)) if hours else None
    if not info or not info.get("isOpen"):
        return []
    return generate_time_slots(info["open"], info["close"])


def end_time_for(start_time: str, duration_minutes: int) -> str:
    """
    start_time + duration as "HH:MM".

    Raises:
        AvailabilityError(INVALID_TIME): bad start, non-positive duration
            or an end past midnight
    """
    try:
        start_min = hhmm_to_minutes(start_time)
    except ValueError as exc:
        raise AvailabilityError(INVALID_TIME, str(exc)) from exc
    if duration_minutes <= 0:
        raise AvailabilityError(INVALID_TIME, "Duration must be positive", {"duration": duration_minutes})
    end_min = start_min + duration_minutes
    if end_min >= 24 * 60:
        raise AvailabilityError(
            INVALID_TIME,
            "Appointment cannot extend past midnight",
            {"start_time": start_time, "duration": duration_minutes},
        )
    return minutes_to_hhmm(end_min)


def find_conflicts(
    staff_id: int,
    day,
    start_time: str,
    end_time: str,
    exclude_appointment_id: int | None = None,
) -> list[Appointment]:
    """Non-cancelled appointments of staff_id on day overlapping [start, end)."""
    day = parse_date(day)
    start_time = parse_hhmm(start_time)
    end_time = parse_hhmm(end_time)

    # HH:MM strings compare correctly as text
    query = db.session.query(Appointment).filter(
        Appointment.staff_id == staff_id,
        Appointment.date == day,
        Appointment.status.notin_(NON_BLOCKING_STATUSES),
        Appointment.start_time < end_time,
        Appointment.end_time > start_time,
    )
    if exclude_appointment_id is not None:
        query = query.filter(Appointment.id != exclude_appointment_id)
    return query.order_by(Appointment.start_time.asc()).all()


def is_slot_available(
    staff_id: int,
    day,
    start_time: str,
    end_time: str,
    exclude_appointment_id: int | None = None,
) -> bool:
    return not find_conflicts(staff_id, day, start_time, end_time, exclude_appointment_id)


def check_interval(
    hours,
    *,
    staff_id: int | None,
    day: date,
    start_time: str,
    end_time: str,
    exclude_appointment_id: int | None = None,
) -> None:
    """
    Full booking check: working hours first, then staff conflicts.

    Raises:
        AvailabilityError: with the code of the first failing rule
    """
    error = validate_working_hours(hours, day, start_time, end_time)
    if error is not None:
        raise error

    if staff_id is None:
        return

    conflicts = find_conflicts(staff_id, day, start_time, end_time, exclude_appointment_id)
    if conflicts:
        raise AvailabilityError(
            SLOT_CONFLICT,
            "Staff member already has an appointment in this time slot",
            {"conflicting_appointment_ids": [a.id for a in conflicts]},
        )


def available_start_times(hours, *, staff_id: int | None, day: date, duration_minutes: int) -> list[str]:
    """Slot starts on day where an appointment of duration_minutes can be booked."""
    available = []
    for slot in slots_for_day(hours, day):
        try:
            end = end_time_for(slot, duration_minutes)
            check_interval(hours, staff_id=staff_id, day=day, start_time=slot, end_time=end)
        except AvailabilityError:
            continue
        available.append(slot)
    return available
