"""Supabase-backed appointment storage and the Realtime booking channel.

One store is created at startup and handed to every operation.
"""
from __future__ import annotations
import logging
from typing import Any

import httpx
from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client

from . import config
from .models import Appointment

logger = logging.getLogger("booking_bridge.store")

TABLE = "appointments"


class StoreError(Exception):
    """The appointments table could not be read or written."""


class AppointmentStore:
    def __init__(self, client: AsyncClient, url: str, key: str, channel: str = config.BOOKING_CHANNEL):
        self.client = client
        self.url = url.rstrip("/")
        self.key = key
        self.channel = channel

    async def find_at(self, timestamp: str) -> list[dict[str, Any]]:
        """Return every appointment whose ``appointment_time`` equals ``timestamp``."""
        try:
            resp = await self.client.table(TABLE).select("*").eq("appointment_time", timestamp).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise StoreError(str(exc)) from exc
        return resp.data or []

    async def insert(self, appointment: Appointment) -> None:
        try:
            await self.client.table(TABLE).insert([appointment.model_dump()]).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise StoreError(str(exc)) from exc

    async def broadcast(self, event: str, payload: dict[str, Any]) -> None:
        """Publish ``payload`` on the booking channel via the Realtime REST API.

        Errors are not wrapped: a failed broadcast fails the request.
        """
        headers = {
            "apikey": self.key,
            "Authorization": f"Bearer {self.key}",
            "Content-Type": "application/json",
        }
        body = {"messages": [{"topic": self.channel, "event": event, "payload": payload}]}
        async with httpx.AsyncClient(http2=True, timeout=None) as client:
            resp = await client.post(f"{self.url}/realtime/v1/api/broadcast", headers=headers, json=body)
            resp.raise_for_status()


async def create_store() -> AppointmentStore | None:
    """Connect to Supabase, or return None when credentials are not configured."""
    if not config.SUPABASE_URL or not config.SUPABASE_KEY:
        logger.warning("SUPABASE_URL/SUPABASE_KEY not set; bookings will report 'Database connection failed'")
        return None
    client = await acreate_client(config.SUPABASE_URL, config.SUPABASE_KEY)
    return AppointmentStore(client, config.SUPABASE_URL, config.SUPABASE_KEY)
