"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin so values serialize to the strings stored in the DB.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle states."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


# Statuses that occupy the staff member's time.
ACTIVE_APPOINTMENT_STATUSES: frozenset[AppointmentStatus] = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.IN_PROGRESS,
})

# Statuses that still get a reminder.
REMINDABLE_APPOINTMENT_STATUSES: frozenset[AppointmentStatus] = frozenset({
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
})


class ReminderType(str, Enum):
    """When a reminder goes out relative to the appointment start."""

    TWENTY_FOUR_HOUR = "24_hours"
    TWO_HOUR = "2_hours"

    @property
    def offset(self) -> timedelta:
        """Lead time between the reminder and the appointment."""
        if self is ReminderType.TWENTY_FOUR_HOUR:
            return timedelta(hours=24)
        return timedelta(hours=2)


class ReminderStatus(str, Enum):
    """ReminderJob lifecycle.

    pending → processing → sent | pending (retry) | failed
    pending/processing → cancelled
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"
    CANCELLED = "cancelled"


class MessageDeliveryStatus(str, Enum):
    """Outcome recorded in the outbound WhatsApp message log."""

    SENT = "sent"
    FAILED = "failed"


class Weekday(str, Enum):
    """Lower-case weekday names as stored in staff working days."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_index(cls, index: int) -> Weekday:
        """Map ``date.weekday()`` (Monday=0) to a Weekday."""
        return list(cls)[index]
