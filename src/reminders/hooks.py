"""Appointment lifecycle hooks for the reminder queue."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.reminders.repository import reminder_job_repository
from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)


async def cancel_reminders_for_appointment(db: AsyncSession, appointment_id: uuid.UUID) -> int:
    """Cancel the appointment's pending and processing reminders.

    Sent and failed jobs are left as they are. A job already handed to the
    gateway cannot be recalled, but its outcome write will not overwrite
    the cancellation. The caller commits.
    """
    cancelled = await reminder_job_repository.cancel_for_appointment(db, appointment_id)
    if cancelled:
        logger.info("Cancelled %d reminders for appointment %s", cancelled, appointment_id)
        await emit(SystemEvent(
            event_type=EventType.REMINDER_CANCELLED,
            appointment_id=appointment_id,
            data={"cancelled": cancelled},
            source_module="reminders.hooks",
        ))
    return cancelled
