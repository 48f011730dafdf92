"""
Availability engine tests: working hours, overlap rules and slot generation.
"""

from datetime import date

import pytest

from zenstyle.models import Appointment
from zenstyle.services import availability_service
from zenstyle.services.availability_service import (
    CLOSED_DAY,
    EXCEEDS_CLOSING,
    INVALID_TIME,
    OUTSIDE_HOURS,
    SLOT_CONFLICT,
    AvailabilityError,
)
from zenstyle.services.settings_service import DEFAULT_WORKING_HOURS


HOURS = DEFAULT_WORKING_HOURS
MONDAY = date(2024, 6, 10)
FRIDAY = date(2024, 6, 14)


class TestValidateWorkingHours:
    def test_interval_inside_hours_passes(self):
        assert availability_service.validate_working_hours(HOURS, MONDAY, "09:00", "10:00") is None

    def test_closed_day_rejected_regardless_of_time(self):
        for start, end in (("09:00", "10:00"), ("12:00", "12:30"), ("18:00", "19:00")):
            error = availability_service.validate_working_hours(HOURS, FRIDAY, start, end)
            assert error.code == CLOSED_DAY

    def test_missing_day_is_closed(self):
        hours = {"monday": {"open": "08:00", "close": "19:00", "isOpen": True}}
        error = availability_service.validate_working_hours(hours, date(2024, 6, 11), "09:00", "10:00")
        assert error.code == CLOSED_DAY

    def test_start_before_opening(self):
        error = availability_service.validate_working_hours(HOURS, MONDAY, "07:30", "08:30")
        assert error.code == OUTSIDE_HOURS

    def test_start_at_closing_is_outside(self):
        error = availability_service.validate_working_hours(HOURS, MONDAY, "19:00", "19:30")
        assert error.code == OUTSIDE_HOURS

    def test_end_after_closing(self):
        error = availability_service.validate_working_hours(HOURS, MONDAY, "18:30", "19:30")
        assert error.code == EXCEEDS_CLOSING

    def test_end_exactly_at_closing_is_allowed(self):
        assert availability_service.validate_working_hours(HOURS, MONDAY, "18:00", "19:00") is None


class TestIntervals:
    def test_overlap(self):
        assert availability_service.intervals_overlap("09:00", "10:00", "09:30", "10:30")
        assert availability_service.intervals_overlap("09:30", "10:30", "09:00", "10:00")
        assert availability_service.intervals_overlap("09:00", "12:00", "10:00", "11:00")

    def test_back_to_back_does_not_overlap(self):
        assert not availability_service.intervals_overlap("09:00", "10:00", "10:00", "11:00")
        assert not availability_service.intervals_overlap("10:00", "11:00", "09:00", "10:00")

    def test_generate_time_slots(self):
        slots = availability_service.generate_time_slots("08:00", "10:00")
        assert slots == ["08:00", "08:30", "09:00", "09:30"]

    def test_generate_time_slots_custom_step(self):
        assert availability_service.generate_time_slots("08:00", "09:00", step=15) == ["08:00", "08:15", "08:30", "08:45"]

    def test_slots_for_closed_day_are_empty(self):
        assert availability_service.slots_for_day(HOURS, FRIDAY) == []
        assert len(availability_service.slots_for_day(HOURS, MONDAY)) == 22

    def test_end_time_for(self):
        assert availability_service.end_time_for("09:00", 90) == "10:30"

    def test_end_time_past_midnight_rejected(self):
        with pytest.raises(AvailabilityError) as exc_info:
            availability_service.end_time_for("23:30", 60)
        assert exc_info.value.code == INVALID_TIME

    def test_non_positive_duration_rejected(self):
        with pytest.raises(AvailabilityError) as exc_info:
            availability_service.end_time_for("09:00", 0)
        assert exc_info.value.code == INVALID_TIME


class TestConflicts:
    def _book(self, db_session, client_id, staff_id, start, end, status="confirmed"):
        appointment = Appointment(
            client_id=client_id,
            staff_id=staff_id,
            date=MONDAY,
            start_time=start,
            end_time=end,
            status=status,
            total_amount_cents=0,
        )
        db_session.add(appointment)
        db_session.commit()
        return appointment

    def test_overlapping_appointment_blocks(self, db_session, sarah, amina):
        self._book(db_session, amina.id, sarah.id, "09:00", "10:00")
        assert not availability_service.is_slot_available(sarah.id, MONDAY, "09:30", "10:30")
        assert availability_service.is_slot_available(sarah.id, MONDAY, "10:00", "11:00")

    def test_cancelled_appointment_never_blocks(self, db_session, sarah, amina):
        self._book(db_session, amina.id, sarah.id, "09:00", "10:00", status="cancelled")
        assert availability_service.is_slot_available(sarah.id, MONDAY, "09:00", "10:00")

    def test_excluded_appointment_is_ignored(self, db_session, sarah, amina):
        appointment = self._book(db_session, amina.id, sarah.id, "09:00", "10:00")
        assert availability_service.is_slot_available(
            sarah.id, MONDAY, "09:30", "10:30", exclude_appointment_id=appointment.id
        )

    def test_other_staff_does_not_block(self, db_session, sarah, yasmine, amina):
        self._book(db_session, amina.id, sarah.id, "09:00", "10:00")
        assert availability_service.is_slot_available(yasmine.id, MONDAY, "09:00", "10:00")

    def test_check_interval_reports_conflict_ids(self, db_session, sarah, amina):
        existing = self._book(db_session, amina.id, sarah.id, "09:00", "10:00")
        with pytest.raises(AvailabilityError) as exc_info:
            availability_service.check_interval(
                HOURS, staff_id=sarah.id, day=MONDAY, start_time="09:30", end_time="10:30"
            )
        assert exc_info.value.code == SLOT_CONFLICT
        assert exc_info.value.details["conflicting_appointment_ids"] == [existing.id]

    def test_available_start_times_skip_booked_and_closing(self, db_session, sarah, amina):
        self._book(db_session, amina.id, sarah.id, "09:00", "10:00")
        times = availability_service.available_start_times(
            HOURS, staff_id=sarah.id, day=MONDAY, duration_minutes=60
        )
        assert "08:00" in times
        assert "08:30" not in times
        assert "09:00" not in times
        assert "09:30" not in times
        assert "10:00" in times
        assert "18:00" in times
        assert "18:30" not in times
