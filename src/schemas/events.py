"""SystemEvent schema — what the scheduling core reports about itself.

Booking and reminder operations emit SystemEvents; the audit subscriber
persists them to the audit_log table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class EventType(str, Enum):
    """All event types emitted by the scheduling core."""

    # Appointments
    APPOINTMENT_CANCELLED = "appointment.cancelled"

    # Reminder jobs
    REMINDER_CREATED = "reminder.created"
    REMINDER_SENT = "reminder.sent"
    REMINDER_RETRY = "reminder.retry"
    REMINDER_FAILED = "reminder.failed"
    REMINDER_CANCELLED = "reminder.cancelled"

    # Periodic runs
    REMINDERS_SCANNED = "reminders.scanned"
    REMINDERS_DISPATCHED = "reminders.dispatched"

    # System
    SYSTEM_STARTUP = "system.startup"
    SYSTEM_SHUTDOWN = "system.shutdown"
    SYSTEM_ERROR = "system.error"


class SystemEvent(BaseModel):
    """Immutable record of something the core did."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    event_type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # Context (optional; periodic-run events have neither)
    salon_id: uuid.UUID | None = None
    appointment_id: uuid.UUID | None = None
    actor_id: str | None = None

    data: dict[str, Any] = Field(default_factory=dict)

    source_module: str | None = Field(default=None, description="Module that emitted this event")

    model_config = {"frozen": True}
