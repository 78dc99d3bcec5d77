"""SQLAlchemy ORM models for the salon scheduling core.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.appointment import Appointment
from src.models.audit import AuditLog
from src.models.base import Base
from src.models.client import Client
from src.models.enums import (
    AppointmentStatus,
    MessageDeliveryStatus,
    ReminderStatus,
    ReminderType,
    Weekday,
)
from src.models.message import WhatsAppMessage
from src.models.reminder import ReminderJob, ReminderSetting
from src.models.staff import Staff

__all__ = [
    # Base
    "Base",
    # Models
    "Staff",
    "Client",
    "Appointment",
    "ReminderSetting",
    "ReminderJob",
    "WhatsAppMessage",
    "AuditLog",
    # Enums
    "AppointmentStatus",
    "ReminderType",
    "ReminderStatus",
    "MessageDeliveryStatus",
    "Weekday",
]
