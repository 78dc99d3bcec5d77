"""SQL-backed Directory Service.

Converts ORM rows into the immutable snapshots the scheduling core works
on (StaffSchedule, AppointmentInterval, AppointmentSummary). Read-only:
nothing here writes except `mark_appointment_cancelled`.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import settings
from src.models.appointment import Appointment
from src.models.client import Client
from src.models.enums import (
    ACTIVE_APPOINTMENT_STATUSES,
    REMINDABLE_APPOINTMENT_STATUSES,
    AppointmentStatus,
    ReminderType,
)
from src.models.reminder import ReminderSetting
from src.models.staff import Staff
from src.schemas.reminders import AppointmentSummary, ReminderRule
from src.schemas.scheduling import AppointmentInterval, StaffSchedule

logger = logging.getLogger(__name__)


def salon_tz() -> ZoneInfo:
    """Timezone that appointment wall-clock times are expressed in."""
    return ZoneInfo(settings.scheduling.salon_timezone)


def appointment_start(day: dt.date, start_time: dt.time, tz: ZoneInfo | None = None) -> dt.datetime:
    """Aware datetime at which an appointment starts."""
    return dt.datetime.combine(day, start_time, tzinfo=tz or salon_tz())


def staff_to_schedule(staff: Staff) -> StaffSchedule:
    return StaffSchedule(
        staff_id=staff.id,
        working_hours_start=staff.working_hours_start,
        working_hours_end=staff.working_hours_end,
        break_start=staff.break_start,
        break_end=staff.break_end,
        working_days=staff.working_days or [],
    )


def setting_to_rule(setting: ReminderSetting) -> ReminderRule:
    return ReminderRule(
        salon_id=setting.salon_id,
        reminder_type=ReminderType(setting.reminder_timing),
        message_template=setting.message_template,
    )


def appointment_to_interval(appointment: Appointment) -> AppointmentInterval:
    return AppointmentInterval(
        appointment_id=appointment.id,
        staff_id=appointment.staff_id,
        date=appointment.date,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        status=AppointmentStatus(appointment.status),
    )


class DirectoryService:
    """Key-based reads over the salon's records."""

    async def get_staff_schedule(self, db: AsyncSession, staff_id: uuid.UUID) -> StaffSchedule | None:
        """Return the staff member's schedule, or None if unknown."""
        staff = await db.get(Staff, staff_id)
        if staff is None:
            return None
        return staff_to_schedule(staff)

    async def get_appointment(self, db: AsyncSession, appointment_id: uuid.UUID) -> Appointment | None:
        return await db.get(Appointment, appointment_id)

    async def get_appointments_for_staff_date(
        self,
        db: AsyncSession,
        staff_id: uuid.UUID,
        day: dt.date,
    ) -> list[AppointmentInterval]:
        """Active (time-occupying) appointments for one staff member on one day."""
        result = await db.execute(
            select(Appointment)
            .where(
                Appointment.staff_id == staff_id,
                Appointment.date == day,
                Appointment.status.in_([s.value for s in ACTIVE_APPOINTMENT_STATUSES]),
            )
            .order_by(Appointment.start_time.asc())
        )
        return [appointment_to_interval(a) for a in result.scalars().all()]

    async def get_appointments_matching_window(
        self,
        db: AsyncSession,
        salon_id: uuid.UUID,
        start: dt.datetime,
        end: dt.datetime,
        end_inclusive: bool = False,
    ) -> list[AppointmentSummary]:
        """Remindable appointments of a salon starting in ``[start, end)``.

        With ``end_inclusive`` the window is ``[start, end]``.

        Dates and times are stored as salon wall-clock values, so the query
        narrows by date and the exact bounds are applied here.
        """
        tz = salon_tz()
        local_start = start.astimezone(tz)
        local_end = end.astimezone(tz)

        days: list[dt.date] = []
        day = local_start.date()
        while day <= local_end.date():
            days.append(day)
            day += dt.timedelta(days=1)

        result = await db.execute(
            select(Appointment, Client.phone)
            .outerjoin(Client, Appointment.client_id == Client.id)
            .where(
                Appointment.salon_id == salon_id,
                Appointment.date.in_(days),
                Appointment.status.in_([s.value for s in REMINDABLE_APPOINTMENT_STATUSES]),
            )
            .order_by(Appointment.date.asc(), Appointment.start_time.asc())
        )

        summaries: list[AppointmentSummary] = []
        for appointment, phone in result.all():
            starts_at = appointment_start(appointment.date, appointment.start_time, tz)
            if starts_at < start or starts_at > end or (starts_at == end and not end_inclusive):
                continue
            summaries.append(AppointmentSummary(
                appointment_id=appointment.id,
                salon_id=appointment.salon_id,
                client_name=appointment.client_name,
                client_phone=phone,
                service=appointment.service,
                date=appointment.date,
                start_time=appointment.start_time,
                status=AppointmentStatus(appointment.status),
            ))
        return summaries

    async def get_reminder_settings(self, db: AsyncSession, salon_id: uuid.UUID) -> list[ReminderRule]:
        """Enabled reminder settings for one salon."""
        result = await db.execute(
            select(ReminderSetting).where(
                ReminderSetting.salon_id == salon_id,
                ReminderSetting.is_enabled.is_(True),
            )
        )
        return [setting_to_rule(s) for s in result.scalars().all()]

    async def list_enabled_reminder_settings(self, db: AsyncSession) -> list[ReminderRule]:
        """Enabled reminder settings across all salons."""
        result = await db.execute(
            select(ReminderSetting)
            .where(ReminderSetting.is_enabled.is_(True))
            .order_by(ReminderSetting.salon_id)
        )
        return [setting_to_rule(s) for s in result.scalars().all()]

    async def mark_appointment_cancelled(self, db: AsyncSession, appointment: Appointment) -> None:
        appointment.status = AppointmentStatus.CANCELLED.value
        await db.flush()
        logger.info("Appointment marked cancelled: id=%s", appointment.id)


# Module-level singleton
directory_service = DirectoryService()
