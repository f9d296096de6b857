"""Form validation and submission for checkout, contact and reservations."""

import calendar
import re
from datetime import date, datetime
from typing import Any

import structlog

from .document_store import SERVER_TIMESTAMP, DocumentStore
from .errors import ValidationError
from .models import ContactMessage, OrderDetails, Reservation

logger = structlog.get_logger(__name__)

MESSAGES_COLLECTION = "messages"
RESERVATIONS_COLLECTION = "reservations"

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")

# Reservation slots run every 30 minutes from 11:00 AM to 9:00 PM
FIRST_SLOT_HOUR = 11
LAST_SLOT_HOUR = 21
SLOT_MINUTES = (0, 30)
MIN_GUESTS = 1
MAX_GUESTS = 9  # "9+ People (Large Group)"
BOOKING_HORIZON_MONTHS = 6


def _blank(value: Any) -> bool:
    return not str(value or "").strip()


def _check_email(errors: dict[str, str], field_name: str, value: str) -> None:
    if _blank(value):
        errors[field_name] = "Email is required"
    elif not _EMAIL_RE.search(value):
        errors[field_name] = "Email is invalid"


def require_valid(errors: dict[str, str]) -> None:
    """
    Raise if any field failed validation.

    Raises:
        ValidationError: Carrying the field -> message mapping.
    """
    if errors:
        raise ValidationError(errors)


def validate_checkout_details(details: OrderDetails) -> dict[str, str]:
    """Return field errors for the checkout details step."""
    errors: dict[str, str] = {}
    if _blank(details.customer_name):
        errors["customer_name"] = "Name is required"
    _check_email(errors, "customer_email", details.customer_email)
    if _blank(details.customer_phone):
        errors["customer_phone"] = "Phone number is required"
    return errors


def validate_contact_message(message: ContactMessage) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(message.name):
        errors["name"] = "Name is required"
    _check_email(errors, "email", message.email)
    if _blank(message.subject):
        errors["subject"] = "Subject is required"
    if _blank(message.message):
        errors["message"] = "Message is required"
    return errors


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def booking_window(today: date) -> tuple[date, date]:
    """The first and last dates a reservation can be made for."""
    return today, _add_months(today, BOOKING_HORIZON_MONTHS)


def generate_time_slots(day: date | None = None, now: datetime | None = None) -> list[str]:
    """
    Offered reservation times, formatted like "11:00 AM".

    For today, slots start at the next whole hour once 11 AM has passed.
    """
    now = now or datetime.now()
    start_hour = FIRST_SLOT_HOUR
    if day == now.date() and now.hour >= start_hour:
        start_hour = now.hour + 1

    slots = []
    for hour in range(start_hour, LAST_SLOT_HOUR + 1):
        for minute in SLOT_MINUTES:
            if hour == LAST_SLOT_HOUR and minute > 0:
                continue
            display_hour = 12 if hour % 12 == 0 else hour % 12
            period = "PM" if hour >= 12 else "AM"
            slots.append(f"{display_hour}:{minute:02d} {period}")
    return slots


def validate_reservation(reservation: Reservation, now: datetime | None = None) -> dict[str, str]:
    """Return field errors for a reservation request."""
    now = now or datetime.now()
    errors: dict[str, str] = {}
    if _blank(reservation.name):
        errors["name"] = "Name is required"
    _check_email(errors, "email", reservation.email)
    if _blank(reservation.phone):
        errors["phone"] = "Phone number is required"

    day = None
    if _blank(reservation.date):
        errors["date"] = "Date is required"
    else:
        try:
            day = date.fromisoformat(reservation.date)
        except ValueError:
            errors["date"] = "Date is invalid"
        else:
            first, last = booking_window(now.date())
            if not first <= day <= last:
                errors["date"] = "Date must be within the next six months"
                day = None

    if _blank(reservation.time):
        errors["time"] = "Time is required"
    elif day is not None and reservation.time not in generate_time_slots(day, now):
        errors["time"] = "Time is not available"

    if not MIN_GUESTS <= reservation.guests <= MAX_GUESTS:
        errors["guests"] = f"Guests must be between {MIN_GUESTS} and {MAX_GUESTS}"
    return errors


def submit_contact_message(store: DocumentStore, message: ContactMessage) -> str:
    """
    Validate and store a contact message as unread.

    Raises:
        ValidationError: If a field is missing or malformed.
        DocumentStoreError: If the write fails.
    """
    require_valid(validate_contact_message(message))
    doc_id = store.add_document(
        MESSAGES_COLLECTION,
        {**message.to_form(), "status": "unread", "createdAt": SERVER_TIMESTAMP},
    )
    logger.info("contact_message_submitted", doc_id=doc_id)
    return doc_id


def submit_reservation(
    store: DocumentStore, reservation: Reservation, now: datetime | None = None
) -> str:
    """
    Validate and store a reservation request as pending.

    Raises:
        ValidationError: If a field is missing or malformed.
        DocumentStoreError: If the write fails.
    """
    require_valid(validate_reservation(reservation, now))
    doc_id = store.add_document(
        RESERVATIONS_COLLECTION,
        {
            **reservation.to_form(),
            "userId": None,
            "status": "pending",
            "createdAt": SERVER_TIMESTAMP,
        },
    )
    logger.info("reservation_submitted", doc_id=doc_id, date=reservation.date)
    return doc_id
