"""
Public self-booking tests.

The confirmation webhook is replaced with a fake so no request leaves the
test process.
"""

import httpx
import pytest

from zenstyle.models import Appointment, Client
from zenstyle.services import booking_service
from zenstyle.services.availability_service import CLOSED_DAY, SLOT_CONFLICT, AvailabilityError
from zenstyle.services.booking_service import BookingError


WEBHOOK_URL = "https://automation.test/booking"


@pytest.fixture
def webhook_calls(app, monkeypatch):
    """Record webhook posts and answer 200."""
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append({"url": url, "json": json, "timeout": timeout})
        return httpx.Response(200, request=httpx.Request("POST", url))

    monkeypatch.setitem(app.config, "BOOKING_WEBHOOK_URL", WEBHOOK_URL)
    monkeypatch.setattr(booking_service.httpx, "post", fake_post)
    return calls


class TestBookPublic:
    def test_new_phone_creates_client(self, working_hours, haircut, sarah, monday, webhook_calls, db_session):
        appointment = booking_service.book_public(
            name="Lina", phone="0550111222", service_id=haircut.id, staff_id=sarah.id,
            date=monday.isoformat(), time="10:00",
        )

        client = db_session.query(Client).filter_by(phone="0550111222").one()
        assert client.first_name == "Lina"
        assert client.last_name == "N/A"
        assert appointment.client_id == client.id
        assert appointment.status == "confirmed"
        assert (appointment.start_time, appointment.end_time) == ("10:00", "11:00")
        assert appointment.total_amount_cents == 1500

    def test_known_phone_reuses_client(self, working_hours, haircut, amina, monday, webhook_calls, db_session):
        appointment = booking_service.book_public(
            name="Someone Else", phone=amina.phone, service_id=haircut.id, date=monday, time="09:00",
        )
        assert appointment.client_id == amina.id
        assert db_session.query(Client).count() == 1

    def test_webhook_receives_booking(self, working_hours, haircut, monday, webhook_calls):
        booking_service.book_public(name="Lina", phone="0550111222", service_id=haircut.id, date=monday, time="10:00")

        assert len(webhook_calls) == 1
        assert webhook_calls[0]["url"] == WEBHOOK_URL
        assert webhook_calls[0]["json"] == {
            "phone": "0550111222",
            "name": "Lina",
            "service": "Coupe",
            "date": "2024-06-10",
            "time": "10:00",
        }

    def test_webhook_failure_keeps_booking(self, app, working_hours, haircut, monday, monkeypatch, db_session):
        def failing_post(url, json=None, timeout=None):
            raise httpx.ConnectError("connection refused")

        monkeypatch.setitem(app.config, "BOOKING_WEBHOOK_URL", WEBHOOK_URL)
        monkeypatch.setattr(booking_service.httpx, "post", failing_post)

        appointment = booking_service.book_public(
            name="Lina", phone="0550111222", service_id=haircut.id, date=monday, time="10:00",
        )
        assert db_session.get(Appointment, appointment.id) is not None

    def test_webhook_error_status_is_reported_not_raised(self, app, monkeypatch):
        def error_post(url, json=None, timeout=None):
            return httpx.Response(502, request=httpx.Request("POST", url))

        monkeypatch.setitem(app.config, "BOOKING_WEBHOOK_URL", WEBHOOK_URL)
        monkeypatch.setattr(booking_service.httpx, "post", error_post)
        assert booking_service.notify_booking_confirmation(
            phone="1", name="a", service="Coupe", date="2024-06-10", time="10:00"
        ) is False

    def test_webhook_disabled_without_url(self, app):
        assert booking_service.notify_booking_confirmation(
            phone="1", name="a", service="Coupe", date="2024-06-10", time="10:00"
        ) is False

    def test_closed_day_rejected_without_writes(self, working_hours, haircut, friday, webhook_calls, db_session):
        with pytest.raises(AvailabilityError) as exc_info:
            booking_service.book_public(name="Lina", phone="0550111222", service_id=haircut.id, date=friday, time="10:00")

        assert exc_info.value.code == CLOSED_DAY
        assert db_session.query(Client).count() == 0
        assert db_session.query(Appointment).count() == 0
        assert webhook_calls == []

    def test_taken_slot_rejected(self, working_hours, haircut, sarah, monday, webhook_calls):
        booking_service.book_public(
            name="Lina", phone="0550111222", service_id=haircut.id, staff_id=sarah.id, date=monday, time="10:00",
        )
        with pytest.raises(AvailabilityError) as exc_info:
            booking_service.book_public(
                name="Nour", phone="0550333444", service_id=haircut.id, staff_id=sarah.id, date=monday, time="10:30",
            )
        assert exc_info.value.code == SLOT_CONFLICT

    @pytest.mark.parametrize(
        "name,phone",
        [("", "0550111222"), ("Lina", ""), ("   ", "0550111222")],
    )
    def test_name_and_phone_required(self, working_hours, haircut, monday, name, phone):
        with pytest.raises(BookingError):
            booking_service.book_public(name=name, phone=phone, service_id=haircut.id, date=monday, time="10:00")

    def test_service_required(self, working_hours, monday):
        with pytest.raises(BookingError):
            booking_service.book_public(name="Lina", phone="0550111222", service_id=None, date=monday, time="10:00")


class TestCatalogue:
    def test_only_active_services_and_staff(self, db_session, haircut, manicure, sarah, yasmine):
        manicure.is_active = False
        yasmine.is_active = False
        db_session.commit()

        assert [s.id for s in booking_service.public_services()] == [haircut.id]
        assert [s.id for s in booking_service.public_staff()] == [sarah.id]

    def test_available_times_use_service_duration(self, working_hours, haircut, manicure, sarah, monday):
        booking_service.book_public(
            name="Lina", phone="0550111222", service_id=haircut.id, staff_id=sarah.id, date=monday, time="09:00",
        )

        hour_slots = booking_service.available_times(monday.isoformat(), staff_id=sarah.id, service_id=haircut.id)
        half_slots = booking_service.available_times(monday.isoformat(), staff_id=sarah.id, service_id=manicure.id)

        assert "08:30" not in hour_slots
        assert "08:30" in half_slots
        assert "09:30" not in half_slots
        assert hour_slots[-1] == "18:00"
        assert half_slots[-1] == "18:30"

    def test_available_times_closed_day(self, working_hours, haircut, friday):
        assert booking_service.available_times(friday, service_id=haircut.id) == []

    def test_available_times_bad_input(self, working_hours):
        with pytest.raises(BookingError):
            booking_service.available_times("10/06/2024")
        with pytest.raises(BookingError):
            booking_service.available_times("2024-06-10", service_id=9999)
