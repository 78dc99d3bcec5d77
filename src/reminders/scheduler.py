"""Reminder scanner — turns upcoming appointments into queued ReminderJobs.

Runs on a timer. Each run looks at the target window of every enabled
reminder setting and queues at most one job per (appointment, reminder
type). The dedup check is what makes repeated and overlapping runs safe:
the 2-hour window is a ±30 minute band around now+2h, so consecutive
scans see the same appointment more than once.
"""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.channels.whatsapp import normalize_phone
from src.config import settings
from src.db.engine import async_session_factory
from src.directory.service import DirectoryService, appointment_start, directory_service, salon_tz
from src.models.enums import REMINDABLE_APPOINTMENT_STATUSES, ReminderStatus, ReminderType
from src.models.reminder import ReminderJob
from src.reminders.repository import ReminderJobRepository, reminder_job_repository
from src.reminders.templates import render_reminder
from src.schemas.events import EventType, SystemEvent
from src.schemas.reminders import ReminderRule

logger = logging.getLogger(__name__)


def target_window(reminder_type: ReminderType, now: dt.datetime) -> tuple[dt.datetime, dt.datetime]:
    """Bounds of the appointment start times to remind about.

    - 24 hours: the whole next calendar day in the salon timezone, ``[start, end)``.
    - 2 hours: now + 2h ± the configured tolerance (default 30 min), both
      ends included (see `window_includes_end`).
    """
    if now.tzinfo is None:
        msg = "now must be timezone-aware"
        raise ValueError(msg)

    if reminder_type is ReminderType.TWENTY_FOUR_HOUR:
        tz = salon_tz()
        tomorrow = now.astimezone(tz).date() + dt.timedelta(days=1)
        start = dt.datetime.combine(tomorrow, dt.time.min, tzinfo=tz)
        end = dt.datetime.combine(tomorrow + dt.timedelta(days=1), dt.time.min, tzinfo=tz)
        return start, end

    band = dt.timedelta(minutes=settings.reminders.two_hour_tolerance_minutes)
    nominal = now + reminder_type.offset
    return nominal - band, nominal + band


def window_includes_end(reminder_type: ReminderType) -> bool:
    """The 2-hour band is closed; the 24-hour day stops before next midnight."""
    return reminder_type is ReminderType.TWO_HOUR


class ReminderScheduler:
    """Creates pending ReminderJobs for appointments entering a reminder window."""

    def __init__(
        self,
        directory: DirectoryService | None = None,
        jobs: ReminderJobRepository | None = None,
    ) -> None:
        self._directory = directory or directory_service
        self._jobs = jobs or reminder_job_repository

    async def scan_and_enqueue(self, db: AsyncSession, rule: ReminderRule, now: dt.datetime) -> int:
        """Queue reminders for one salon setting. Returns the number created.

        Safe to call repeatedly: an appointment that already has a
        non-cancelled job of this type is skipped. The caller commits.
        """
        return len(await self.enqueue(db, rule, now))

    async def enqueue(self, db: AsyncSession, rule: ReminderRule, now: dt.datetime) -> list[ReminderJob]:
        """Add the new jobs for one setting to the session and return them.

        Nothing is reported here; `report_created` runs once the caller
        has committed.
        """
        reminder_type = rule.reminder_type
        start, end = target_window(reminder_type, now)
        appointments = await self._directory.get_appointments_matching_window(
            db,
            rule.salon_id,
            start,
            end,
            end_inclusive=window_includes_end(reminder_type),
        )

        created: list[ReminderJob] = []
        for appointment in appointments:
            if appointment.status not in REMINDABLE_APPOINTMENT_STATUSES:
                continue
            if not appointment.client_phone or not normalize_phone(appointment.client_phone):
                logger.debug("No phone for appointment %s, skipping reminder", appointment.appointment_id)
                continue
            if await self._jobs.exists_active(db, appointment.appointment_id, reminder_type):
                logger.debug(
                    "Reminder already exists: appointment=%s type=%s",
                    appointment.appointment_id,
                    reminder_type.value,
                )
                continue

            starts_at = appointment_start(appointment.date, appointment.start_time)
            job = ReminderJob(
                appointment_id=appointment.appointment_id,
                salon_id=appointment.salon_id,
                reminder_type=reminder_type.value,
                client_name=appointment.client_name,
                client_phone=appointment.client_phone,
                message_content=render_reminder(rule.message_template, appointment, reminder_type),
                scheduled_time=starts_at - reminder_type.offset,
                status=ReminderStatus.PENDING.value,
                attempts=0,
                max_attempts=settings.reminders.reminder_max_attempts,
            )
            if not await self._jobs.add(db, job):
                continue

            created.append(job)

        if created:
            logger.info(
                "Queued %d %s reminders for salon %s (window %s to %s)",
                len(created),
                reminder_type.value,
                rule.salon_id,
                start.isoformat(),
                end.isoformat(),
            )
        return created


async def report_created(jobs: list[ReminderJob]) -> None:
    """Emit one REMINDER_CREATED per committed job."""
    for job in jobs:
        await emit(SystemEvent(
            event_type=EventType.REMINDER_CREATED,
            salon_id=job.salon_id,
            appointment_id=job.appointment_id,
            data={
                "reminder_type": job.reminder_type,
                "scheduled_time": job.scheduled_time.isoformat(),
            },
            source_module="reminders.scheduler",
        ))


# Module-level singleton
reminder_scheduler = ReminderScheduler()


async def scan_all(now: dt.datetime | None = None) -> int:
    """Run the scanner for every enabled setting of every salon.

    Each setting is committed on its own; a failing salon is logged and
    rolled back without affecting the rest. Never raises.
    """
    now = now or dt.datetime.now(dt.UTC)
    created = 0
    failed_rules = 0

    try:
        async with async_session_factory() as db:
            rules = await directory_service.list_enabled_reminder_settings(db)
            for rule in rules:
                try:
                    jobs = await reminder_scheduler.enqueue(db, rule, now)
                    await db.commit()
                except Exception:
                    failed_rules += 1
                    await db.rollback()
                    logger.exception(
                        "Reminder scan failed for salon %s (%s)",
                        rule.salon_id,
                        rule.reminder_type.value,
                    )
                    continue

                created += len(jobs)
                await report_created(jobs)
    except Exception:
        logger.exception("Reminder scan run failed")
        return created

    await emit(SystemEvent(
        event_type=EventType.REMINDERS_SCANNED,
        data={"created": created, "rules": len(rules), "failed_rules": failed_rules},
        source_module="reminders.scheduler",
    ))
    logger.info("Reminder scan complete: created=%d rules=%d failed=%d", created, len(rules), failed_rules)
    return created
