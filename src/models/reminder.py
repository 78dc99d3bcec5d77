"""Reminder models — per-salon settings and the reminder job queue.

`reminder_jobs` is the only channel between the scanner and the
dispatcher. The partial unique index is the database backstop for the
one-job-per-(appointment, reminder type) rule.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import ReminderStatus


class ReminderSetting(TimestampMixin, Base):
    """A salon's reminder configuration for one timing."""

    __tablename__ = "reminder_settings"

    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    reminder_timing: Mapped[str] = mapped_column(String(20), nullable=False, comment="24_hours or 2_hours")
    is_enabled: Mapped[bool] = mapped_column(default=True)
    message_template: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<ReminderSetting salon={self.salon_id} timing={self.reminder_timing} enabled={self.is_enabled}>"


class ReminderJob(TimestampMixin, Base):
    """One reminder message for one appointment."""

    __tablename__ = "reminder_jobs"
    __table_args__ = (
        Index(
            "uq_reminder_jobs_appointment_type_active",
            "appointment_id",
            "reminder_type",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
        ),
        Index("ix_reminder_jobs_status_scheduled", "status", "scheduled_time"),
    )

    appointment_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False
    )
    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    reminder_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Delivery payload, rendered at enqueue time
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    client_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)

    # Lifecycle
    scheduled_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=ReminderStatus.PENDING.value, nullable=False
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    max_attempts: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    last_error: Mapped[str | None] = mapped_column(Text)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    gateway_message_id: Mapped[str | None] = mapped_column(String(255))

    def __repr__(self) -> str:
        return (
            f"<ReminderJob id={self.id} appointment={self.appointment_id} "
            f"type={self.reminder_type} status={self.status} attempts={self.attempts}>"
        )
