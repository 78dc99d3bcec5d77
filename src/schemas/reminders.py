"""Pydantic schemas shared by the reminder scanner, dispatcher and gateway."""

from __future__ import annotations

import datetime as dt
import uuid

from pydantic import BaseModel

from src.models.enums import AppointmentStatus, ReminderType


class AppointmentSummary(BaseModel):
    """What the reminder scanner needs to know about an upcoming appointment."""

    appointment_id: uuid.UUID
    salon_id: uuid.UUID
    client_name: str
    client_phone: str | None = None
    service: str
    date: dt.date
    start_time: dt.time
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    model_config = {"frozen": True}


class SendResult(BaseModel):
    """Messaging Gateway response to a send request."""

    ok: bool
    message_id: str | None = None
    error: str | None = None


class DispatchSummary(BaseModel):
    """Counts from one dispatch run."""

    sent: int = 0
    failed: int = 0


class ReminderRule(BaseModel):
    """One enabled reminder setting of a salon."""

    salon_id: uuid.UUID
    reminder_type: ReminderType
    message_template: str

    model_config = {"frozen": True}
