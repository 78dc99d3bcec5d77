"""Scheduling service — availability, booking checks and cancellation.

Async façade over the pure availability engine and booking validator:
loads the staff schedule and the day's appointments through the
Directory Service, then hands the snapshots to the pure functions.

Cancellation is the one write here. It marks the appointment cancelled
and withdraws its queued reminders in the caller's transaction.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.config import settings
from src.directory.service import DirectoryService, directory_service
from src.models.appointment import Appointment
from src.models.enums import AppointmentStatus
from src.reminders.hooks import cancel_reminders_for_appointment
from src.scheduling import availability, validation
from src.schemas.events import EventType, SystemEvent
from src.schemas.scheduling import (
    AppointmentInterval,
    AppointmentProposal,
    TimeSlot,
    ValidationResult,
)

logger = logging.getLogger(__name__)


class SchedulingService:
    """Booking operations for the salon calendar."""

    def __init__(self, directory: DirectoryService | None = None) -> None:
        self._directory = directory or directory_service

    async def get_slots(
        self,
        db: AsyncSession,
        staff_id: uuid.UUID,
        day: dt.date,
        service_duration: int | None = None,
    ) -> list[TimeSlot]:
        """Candidate slots for a staff member's day. Unknown staff → empty list."""
        schedule = await self._directory.get_staff_schedule(db, staff_id)
        if schedule is None:
            logger.warning("Slots requested for unknown staff %s", staff_id)
            return []

        existing = await self._directory.get_appointments_for_staff_date(db, staff_id, day)
        return availability.generate_slots(
            schedule,
            day,
            existing,
            service_duration=service_duration or settings.scheduling.default_service_duration,
            granularity_minutes=settings.scheduling.slot_granularity_minutes,
        )

    async def next_available_slot(
        self,
        db: AsyncSession,
        staff_id: uuid.UUID,
        day: dt.date,
        service_duration: int | None = None,
    ) -> str | None:
        schedule = await self._directory.get_staff_schedule(db, staff_id)
        if schedule is None:
            return None

        existing = await self._directory.get_appointments_for_staff_date(db, staff_id, day)
        return availability.find_next_available_slot(
            schedule,
            day,
            existing,
            service_duration=service_duration or settings.scheduling.default_service_duration,
            granularity_minutes=settings.scheduling.slot_granularity_minutes,
        )

    async def validate_create(
        self,
        db: AsyncSession,
        proposal: AppointmentProposal,
        now: dt.datetime | None = None,
    ) -> ValidationResult:
        """Validate a new booking against the staff member's current calendar."""
        schedule = None
        existing: list[AppointmentInterval] = []
        if proposal.staff_id is not None:
            schedule = await self._directory.get_staff_schedule(db, proposal.staff_id)
            existing = await self._directory.get_appointments_for_staff_date(
                db, proposal.staff_id, proposal.date
            )
        return validation.validate_create(proposal, existing, schedule=schedule, now=now)

    async def validate_move(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        new_staff_id: uuid.UUID | None,
        new_date: dt.date,
        new_start: str | dt.time | None,
        new_end: str | dt.time | None,
        now: dt.datetime | None = None,
    ) -> ValidationResult:
        """Validate moving an appointment; its current slot never conflicts with itself."""
        schedule = None
        existing: list[AppointmentInterval] = []
        if new_staff_id is not None:
            schedule = await self._directory.get_staff_schedule(db, new_staff_id)
            existing = await self._directory.get_appointments_for_staff_date(db, new_staff_id, new_date)
        return validation.validate_move(
            appointment_id,
            new_staff_id,
            new_date,
            new_start,
            new_end,
            existing,
            schedule=schedule,
            now=now,
        )

    async def cancel_appointment(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        actor_id: str | None = None,
    ) -> Appointment | None:
        """Cancel an appointment and its queued reminders. Returns None if not found.

        The caller commits; both writes land in the same transaction.
        """
        appointment = await self._directory.get_appointment(db, appointment_id)
        if appointment is None:
            return None

        if appointment.status != AppointmentStatus.CANCELLED.value:
            await self._directory.mark_appointment_cancelled(db, appointment)

        reminders_cancelled = await cancel_reminders_for_appointment(db, appointment.id)

        await emit(SystemEvent(
            event_type=EventType.APPOINTMENT_CANCELLED,
            salon_id=appointment.salon_id,
            appointment_id=appointment.id,
            actor_id=actor_id,
            data={"reminders_cancelled": reminders_cancelled},
            source_module="scheduling.service",
        ))

        logger.info(
            "Appointment cancelled: id=%s reminders_cancelled=%d",
            appointment.id,
            reminders_cancelled,
        )
        return appointment


# Module-level singleton
scheduling_service = SchedulingService()
