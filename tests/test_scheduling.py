import pytest

from booking_bridge import scheduling as sch
from booking_bridge.models import BookingRequest

from conftest import FakeStore


@pytest.mark.parametrize("raw, expected", [
    ("10:30 AM", "10:30"),
    ("2pm", "14:00"),
    ("12am", "00:00"),
    ("12pm", "12:00"),
    ("3 pm", "15:00"),
    ("9:05", "09:05"),
    ("tomorrow morning", "09:00"),
    ("", "09:00"),
    (None, "09:00"),
])
def test_normalize_time(raw, expected):
    assert sch.format_time(*sch.normalize_time(raw)) == expected


def test_booking_request_defaults_and_alternate_keys():
    req = BookingRequest.from_args({"userName": "Ada", "phone": "", "phoneNumber": "555", "notes": "toothache"})
    assert req.name == "Ada"
    assert req.phone == "555"
    assert req.issue == "toothache"

    bare = BookingRequest.from_args({})
    assert (bare.name, bare.phone, bare.issue) == ("Unknown", "Unknown", "General Consultation")


@pytest.mark.asyncio
async def test_check_requires_date_and_time(store):
    result = await sch.check_availability({"date": "2024-01-01"}, store)
    assert result == {"available": False, "message": "I need a specific date and time to check."}


@pytest.mark.asyncio
@pytest.mark.parametrize("raw_time", ["8:00", "17:00", "5pm", "11pm", "12am"])
async def test_check_outside_business_hours(store, raw_time):
    result = await sch.check_availability({"date": "2024-01-01", "time": raw_time}, store)
    assert result == {"available": False, "reason": "Outside of business hours (09:00 - 17:00)"}


@pytest.mark.asyncio
@pytest.mark.parametrize("hour", range(9, 17))
async def test_check_inside_business_hours(store, hour):
    result = await sch.check_availability({"requested_date": "2024-01-01", "requested_time": f"{hour}:00"}, store)
    assert result == {"available": True}


@pytest.mark.asyncio
async def test_check_detects_taken_slot():
    store = FakeStore(rows=[{"appointment_time": "2024-01-01T10:00:00"}])
    taken = await sch.check_availability({"date": "2024-01-01", "time": "10:00"}, store)
    free = await sch.check_availability({"date": "2024-01-01", "time": "11:00"}, store)
    assert taken == {"available": False, "reason": "Slot is already taken."}
    assert free == {"available": True}


@pytest.mark.asyncio
async def test_check_store_failure_is_a_result():
    result = await sch.check_availability({"date": "2024-01-01", "time": "10:00"}, FakeStore(fail_find=True))
    assert result == {"available": False, "reason": "Database error"}


@pytest.mark.asyncio
async def test_check_without_store():
    result = await sch.check_availability({"date": "2024-01-01", "time": "10:00"}, None)
    assert result == {"available": False, "reason": "Database connection failed"}


@pytest.mark.asyncio
async def test_book_defaults_and_broadcast(store):
    result = await sch.book_appointment({"date": "2024-01-01", "time": "3 pm"}, store)
    assert result == {"success": True, "message": "Booked for 3 pm"}

    row = store.rows[0]
    assert row == {
        "patient_name": "Unknown",
        "phone_number": "Unknown",
        "issue_description": "General Consultation",
        "appointment_time": "2024-01-01T15:00:00",
        "status": "confirmed",
    }
    event, payload = store.broadcasts[0]
    assert event == "new_booking"
    assert payload["id"].startswith("demo-")
    assert payload["issue_description"] == "General Consultation"
    assert {k: v for k, v in payload.items() if k != "id"} == row


@pytest.mark.asyncio
async def test_book_skips_business_hours_check(store):
    result = await sch.book_appointment({"requested_date": "2024-01-01", "requested_time": "8pm", "reason": "cleaning"}, store)
    assert result["success"] is True
    assert store.rows[0]["appointment_time"] == "2024-01-01T20:00:00"
    assert store.rows[0]["issue_description"] == "cleaning"


@pytest.mark.asyncio
async def test_book_insert_failure_is_a_result():
    store = FakeStore(fail_insert=True)
    result = await sch.book_appointment({"date": "2024-01-01", "time": "10am"}, store)
    assert result == {"success": False, "message": "Failed to save appointment"}


@pytest.mark.asyncio
async def test_book_broadcast_failure_propagates():
    store = FakeStore(fail_broadcast=True)
    with pytest.raises(RuntimeError):
        await sch.book_appointment({"date": "2024-01-01", "time": "10am"}, store)
    assert store.rows == []


@pytest.mark.asyncio
async def test_book_without_store_or_date(store):
    assert await sch.book_appointment({"date": "2024-01-01"}, None) == {
        "success": False, "message": "Database connection failed",
    }
    assert await sch.book_appointment({"time": "10am"}, store) == {
        "success": False, "message": "I need a specific date to book.",
    }


@pytest.mark.asyncio
async def test_book_without_time_echoes_default(store):
    result = await sch.book_appointment({"date": "2024-01-01"}, store)
    assert result == {"success": True, "message": "Booked for 09:00"}


@pytest.mark.asyncio
async def test_dispatch_unknown_name(store):
    assert await sch.dispatch("cancelAppointment", {}, store) == {"error": "Unknown function"}
    assert await sch.dispatch(None, None, store) == {"error": "Unknown function"}


@pytest.mark.asyncio
async def test_dispatch_non_string_name_and_non_mapping_args(store):
    assert await sch.dispatch(42, {}, store) == {"error": "Unknown function"}
    assert await sch.dispatch(["checkAvailability"], {}, store) == {"error": "Unknown function"}
    assert await sch.dispatch("checkAvailability", ["2024-01-01"], store) == {
        "available": False, "message": "I need a specific date and time to check.",
    }
