"""Messaging Gateway adapter for the multi-salon WhatsApp server.

The server owns one WhatsApp Web session per salon and exposes:
- GET  /status  → {"is_ready": bool, ...}      (salon picked by X-Salon-ID)
- POST /send    → {"success": true, "message_id": "..."} or {"error": "..."}

This module never raises on transport problems: readiness checks return
False and sends return a failed SendResult, so the dispatcher can turn
them into job state transitions.
"""

from __future__ import annotations

import logging
import re
import uuid

import httpx

from src.config import settings
from src.schemas.reminders import SendResult

logger = logging.getLogger(__name__)

_NON_DIGIT_RE = re.compile(r"\D")


def normalize_phone(phone: str) -> str:
    """Strip everything but digits — the form the gateway expects."""
    return _NON_DIGIT_RE.sub("", phone)


def _salon_headers(salon_id: uuid.UUID) -> dict[str, str]:
    return {
        "X-Salon-ID": str(salon_id),
        "Content-Type": "application/json",
    }


class WhatsAppGateway:
    """Async client for the WhatsApp gateway server.

    `send` has no timeout of its own beyond httpx's; the dispatcher bounds
    the whole call with ``asyncio.wait_for``.
    """

    def __init__(self, base_url: str | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._base_url = (base_url or settings.whatsapp.whatsapp_gateway_url).rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=httpx.Timeout(30.0, connect=5.0),
        )

    async def is_session_ready(self, salon_id: uuid.UUID) -> bool:
        """True when the salon's WhatsApp session is connected and ready."""
        try:
            resp = await self._client.get(
                "/status",
                headers=_salon_headers(salon_id),
                timeout=settings.whatsapp.whatsapp_status_timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except (httpx.HTTPError, ValueError):
            logger.warning("WhatsApp status check failed for salon %s", salon_id)
            return False

        if not isinstance(payload, dict):
            logger.warning("WhatsApp status for salon %s is not a JSON object", salon_id)
            return False
        return bool(payload.get("is_ready") or payload.get("connection_state") == "ready")

    async def send(self, salon_id: uuid.UUID, phone: str, text: str) -> SendResult:
        """Send a plain text message from the salon's WhatsApp session."""
        payload = {"phone": normalize_phone(phone), "message": text}
        try:
            resp = await self._client.post("/send", json=payload, headers=_salon_headers(salon_id))
        except httpx.HTTPError as exc:
            logger.warning("WhatsApp send to %s failed: %s", payload["phone"], exc)
            return SendResult(ok=False, error=str(exc) or exc.__class__.__name__)

        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if resp.is_error or body.get("success") is not True:
            error = str(body.get("error") or f"gateway returned HTTP {resp.status_code}")
            logger.warning("WhatsApp send to %s rejected: %s", payload["phone"], error)
            return SendResult(ok=False, error=error)

        message_id = body.get("message_id")
        return SendResult(ok=True, message_id=str(message_id) if message_id is not None else None)

    async def close(self) -> None:
        await self._client.aclose()


# Module-level singleton
whatsapp_gateway = WhatsAppGateway()
