"""Audit subscriber — persists every SystemEvent to the audit_log table.

Registered as a global subscriber. Failures are logged and swallowed so a
database hiccup never stops reminders from going out.
"""

from __future__ import annotations

import logging

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.events import SystemEvent

logger = logging.getLogger(__name__)


async def audit_on_event(event: SystemEvent) -> None:
    """Write one SystemEvent to audit_log."""
    try:
        async with async_session_factory() as db:
            db.add(AuditLog(
                event_type=event.event_type.value,
                salon_id=event.salon_id,
                appointment_id=event.appointment_id,
                actor_id=event.actor_id or "system",
                data={**event.data, "source_module": event.source_module},
            ))
            await db.commit()
    except Exception:
        logger.exception(
            "Failed to persist audit event: %s (appointment=%s)",
            event.event_type.value,
            event.appointment_id,
        )
