"""Availability checks and bookings shared by both voice-platform webhooks.

Results are plain dicts because they are handed back to the voice agent
verbatim. Business rejections and store failures are results, not exceptions.
"""
from __future__ import annotations
import logging
import re
import time
from typing import Any, Mapping

from .models import Appointment, AvailabilityQuery, BookingEvent, BookingRequest
from .store import AppointmentStore, StoreError

logger = logging.getLogger("booking_bridge.scheduling")

START_HOUR = 9
END_HOUR = 17

DEFAULT_HOUR = 9
DEFAULT_MINUTE = 0

_TIME_RE = re.compile(r"(\d+):?(\d*)\s*(am|pm|a|p)?", re.IGNORECASE)


def normalize_time(value: str | None) -> tuple[int, int]:
    """Pull an (hour, minute) pair out of free text such as "10:30 AM" or "3 pm".

    Anything without digits falls back to 09:00 rather than failing. Hours are
    not range-checked.
    """
    match = _TIME_RE.search(value) if value else None
    if not match:
        return DEFAULT_HOUR, DEFAULT_MINUTE

    hours = int(match.group(1))
    minutes = int(match.group(2)) if match.group(2) else 0
    marker = (match.group(3) or "").lower()
    if marker.startswith("p") and hours < 12:
        hours += 12
    if marker.startswith("a") and hours == 12:
        hours = 0
    return hours, minutes


def format_time(hours: int, minutes: int) -> str:
    return f"{hours:02d}:{minutes:02d}"


def is_business_hours(hours: int) -> bool:
    return START_HOUR <= hours < END_HOUR


def slot_timestamp(date: str, hours: int, minutes: int) -> str:
    return f"{date}T{format_time(hours, minutes)}:00"


async def check_availability(args: Mapping[str, Any], store: AppointmentStore | None) -> dict[str, Any]:
    query = AvailabilityQuery.from_args(args)
    if not query.date or not query.time:
        return {"available": False, "message": "I need a specific date and time to check."}

    hours, minutes = normalize_time(query.time)
    if not is_business_hours(hours):
        return {"available": False, "reason": "Outside of business hours (09:00 - 17:00)"}

    if store is None:
        return {"available": False, "reason": "Database connection failed"}

    timestamp = slot_timestamp(query.date, hours, minutes)
    try:
        rows = await store.find_at(timestamp)
    except StoreError as exc:
        logger.error(f"Database error in checkAvailability: {exc}")
        return {"available": False, "reason": "Database error"}

    if rows:
        return {"available": False, "reason": "Slot is already taken."}
    return {"available": True}


async def book_appointment(args: Mapping[str, Any], store: AppointmentStore | None) -> dict[str, Any]:
    """Record a confirmed appointment and announce it on the booking channel.

    No business-hours or collision check happens here; callers are expected to
    run ``check_availability`` first, and two concurrent bookings for the same
    slot can both succeed.
    """
    req = BookingRequest.from_args(args)
    logger.info(f"Booking requested: {dict(args)}")
    logger.info(f"Extracted issue description: {req.issue}")

    if not req.date:
        return {"success": False, "message": "I need a specific date to book."}

    hours, minutes = normalize_time(req.time)
    appointment = Appointment(
        patient_name=req.name,
        phone_number=req.phone,
        issue_description=req.issue,
        appointment_time=slot_timestamp(req.date, hours, minutes),
    )

    if store is None:
        return {"success": False, "message": "Database connection failed"}

    event = BookingEvent(id=f"demo-{int(time.time() * 1000)}", **appointment.model_dump())
    await store.broadcast("new_booking", event.model_dump())

    try:
        await store.insert(appointment)
    except StoreError as exc:
        logger.error(f"Error inserting appointment: {exc}")
        return {"success": False, "message": "Failed to save appointment"}

    return {"success": True, "message": f"Booked for {req.time or format_time(hours, minutes)}"}


OPERATIONS = {
    "checkAvailability": check_availability,
    "bookAppointment": book_appointment,
}


async def dispatch(name: Any, args: Any, store: AppointmentStore | None) -> dict[str, Any]:
    """Run the named operation; anything else yields ``{"error": "Unknown function"}``.

    Arguments that are not a mapping are treated as empty.
    """
    operation = OPERATIONS.get(name) if isinstance(name, str) else None
    if operation is None:
        return {"error": "Unknown function"}
    return await operation(args if isinstance(args, Mapping) else {}, store)
