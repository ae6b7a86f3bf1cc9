import pytest

from booking_bridge.store import StoreError


class FakeStore:
    """In-memory stand-in for AppointmentStore."""

    def __init__(self, rows=None, fail_find=False, fail_insert=False, fail_broadcast=False):
        self.rows = list(rows or [])
        self.fail_find = fail_find
        self.fail_insert = fail_insert
        self.fail_broadcast = fail_broadcast
        self.broadcasts = []

    async def find_at(self, timestamp):
        if self.fail_find:
            raise StoreError("connection reset")
        return [r for r in self.rows if r["appointment_time"] == timestamp]

    async def insert(self, appointment):
        if self.fail_insert:
            raise StoreError("insert rejected")
        self.rows.append(appointment.model_dump())

    async def broadcast(self, event, payload):
        if self.fail_broadcast:
            raise RuntimeError("realtime unavailable")
        self.broadcasts.append((event, payload))


@pytest.fixture
def store():
    return FakeStore()
