"""Async Retell API client, used to start browser web calls.
Authenticates with the account API key as a bearer token.
"""
from __future__ import annotations
from typing import Any

import httpx

from . import config


class RetellAPIError(Exception):
    """Retell answered with a non-success status."""


async def create_web_call() -> dict[str, Any]:
    """Create a web call for the configured agent and return Retell's JSON verbatim."""
    headers = {"Authorization": f"Bearer {config.RETELL_API_KEY}", "Content-Type": "application/json"}
    async with httpx.AsyncClient(http2=True, timeout=None) as client:
        resp = await client.post(
            f"{config.RETELL_BASE_URL}/v2/create-web-call",
            headers=headers,
            json={"agent_id": config.RETELL_AGENT_ID},
        )
    if not resp.is_success:
        raise RetellAPIError(f"Retell API error: {resp.reason_phrase}")
    return resp.json()
