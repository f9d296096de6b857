"""Tests for form validation and submission."""

from datetime import date, datetime

import pytest

from bistro.document_store import LocalDocumentStore
from bistro.errors import ValidationError
from bistro.forms import (
    MESSAGES_COLLECTION,
    RESERVATIONS_COLLECTION,
    booking_window,
    generate_time_slots,
    submit_contact_message,
    submit_reservation,
    validate_checkout_details,
    validate_contact_message,
    validate_reservation,
)
from bistro.models import ContactMessage, OrderDetails, Reservation

NOW = datetime(2024, 5, 1, 14, 20)


def _reservation(**overrides):
    values = {
        "name": "Ana Rossi",
        "email": "ana@example.com",
        "phone": "555-0101",
        "date": "2024-05-03",
        "time": "7:30 PM",
        "guests": 4,
        "special_requests": "Window seat",
    }
    values.update(overrides)
    return Reservation(**values)


class TestCheckoutDetails:
    def test_valid(self):
        details = OrderDetails("Ana", "ana@example.com", "555")
        assert validate_checkout_details(details) == {}

    def test_missing_fields(self):
        errors = validate_checkout_details(OrderDetails(customer_name="  "))
        assert set(errors) == {"customer_name", "customer_email", "customer_phone"}
        assert errors["customer_email"] == "Email is required"

    @pytest.mark.parametrize("email", ["ana", "ana@example", "ana example.com"])
    def test_invalid_email(self, email):
        errors = validate_checkout_details(OrderDetails("Ana", email, "555"))
        assert errors == {"customer_email": "Email is invalid"}


class TestContactMessage:
    def test_missing_fields(self):
        errors = validate_contact_message(ContactMessage("", "", "", ""))
        assert set(errors) == {"name", "email", "subject", "message"}

    def test_submit_stores_unread_message(self, temp_dir):
        store = LocalDocumentStore(temp_dir)
        message = ContactMessage("Ana", "ana@example.com", "Hello", "Great food")

        doc_id = submit_contact_message(store, message)

        stored = store.get_document(f"{MESSAGES_COLLECTION}/{doc_id}")
        assert stored["status"] == "unread"
        assert stored["subject"] == "Hello"
        assert stored["createdAt"].endswith("Z")

    def test_invalid_message_is_not_stored(self, temp_dir):
        store = LocalDocumentStore(temp_dir)
        with pytest.raises(ValidationError) as exc_info:
            submit_contact_message(store, ContactMessage("Ana", "bad", "Hi", "x"))
        assert exc_info.value.errors == {"email": "Email is invalid"}
        assert store.list_documents(MESSAGES_COLLECTION) == []


class TestTimeSlots:
    def test_future_day_has_all_slots(self):
        slots = generate_time_slots(date(2024, 5, 2), NOW)
        assert slots[0] == "11:00 AM"
        assert "12:00 PM" in slots
        assert "12:30 PM" in slots
        assert slots[-1] == "9:00 PM"
        assert "9:30 PM" not in slots
        assert len(slots) == 21

    def test_today_starts_at_next_hour(self):
        slots = generate_time_slots(date(2024, 5, 1), NOW)
        assert slots[0] == "3:00 PM"
        assert "2:30 PM" not in slots
        assert len(slots) == 13

    def test_today_before_opening(self):
        morning = datetime(2024, 5, 1, 9, 15)
        assert generate_time_slots(date(2024, 5, 1), morning)[0] == "11:00 AM"

    def test_today_after_last_slot(self):
        late = datetime(2024, 5, 1, 21, 5)
        assert generate_time_slots(date(2024, 5, 1), late) == []

    def test_booking_window(self):
        assert booking_window(date(2024, 5, 1)) == (date(2024, 5, 1), date(2024, 11, 1))
        assert booking_window(date(2024, 8, 31))[1] == date(2025, 2, 28)


class TestReservation:
    def test_valid(self):
        assert validate_reservation(_reservation(), NOW) == {}

    def test_today_past_slot_unavailable(self):
        errors = validate_reservation(_reservation(date="2024-05-01", time="2:30 PM"), NOW)
        assert errors == {"time": "Time is not available"}

    def test_today_later_slot_ok(self):
        assert validate_reservation(_reservation(date="2024-05-01", time="3:00 PM"), NOW) == {}

    def test_unknown_time(self):
        errors = validate_reservation(_reservation(time="7:15 PM"), NOW)
        assert errors == {"time": "Time is not available"}

    @pytest.mark.parametrize("day", ["2024-04-30", "2024-11-02"])
    def test_date_outside_window(self, day):
        errors = validate_reservation(_reservation(date=day), NOW)
        assert set(errors) == {"date"}

    def test_last_bookable_day(self):
        assert validate_reservation(_reservation(date="2024-11-01"), NOW) == {}

    def test_malformed_date(self):
        errors = validate_reservation(_reservation(date="2024-13-01"), NOW)
        assert errors == {"date": "Date is invalid"}

    @pytest.mark.parametrize("guests", [0, 10])
    def test_guest_range(self, guests):
        errors = validate_reservation(_reservation(guests=guests), NOW)
        assert set(errors) == {"guests"}

    def test_missing_fields(self):
        errors = validate_reservation(
            _reservation(name="", email="", phone="", date="", time=""), NOW
        )
        assert set(errors) == {"name", "email", "phone", "date", "time"}

    def test_submit_stores_pending_reservation(self, temp_dir):
        store = LocalDocumentStore(temp_dir)
        doc_id = submit_reservation(store, _reservation(), NOW)

        stored = store.get_document(f"{RESERVATIONS_COLLECTION}/{doc_id}")
        assert stored["status"] == "pending"
        assert stored["userId"] is None
        assert stored["guests"] == 4
        assert stored["specialRequests"] == "Window seat"
        assert "createdAt" in stored

    def test_invalid_reservation_is_not_stored(self, temp_dir):
        store = LocalDocumentStore(temp_dir)
        with pytest.raises(ValidationError):
            submit_reservation(store, _reservation(guests=12), NOW)
        assert store.list_documents(RESERVATIONS_COLLECTION) == []
