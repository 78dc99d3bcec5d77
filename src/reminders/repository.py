"""ReminderJob persistence — every status change is a guarded UPDATE.

Each transition names the status it expects the row to be in, so two
workers can never both act on the same job: whoever loses the race
updates zero rows and backs off.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import ReminderStatus, ReminderType
from src.models.reminder import ReminderJob

logger = logging.getLogger(__name__)


class ReminderJobRepository:
    """Database operations for reminder jobs."""

    async def exists_active(
        self,
        db: AsyncSession,
        appointment_id: uuid.UUID,
        reminder_type: ReminderType,
    ) -> bool:
        """True if a non-cancelled job exists for this dedup key."""
        result = await db.execute(
            select(ReminderJob.id)
            .where(
                ReminderJob.appointment_id == appointment_id,
                ReminderJob.reminder_type == reminder_type.value,
                ReminderJob.status != ReminderStatus.CANCELLED.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def add(self, db: AsyncSession, job: ReminderJob) -> bool:
        """Insert a job inside a savepoint.

        Returns False when a concurrent scanner already inserted the same
        dedup key (the partial unique index rejects the row).
        """
        try:
            async with db.begin_nested():
                db.add(job)
        except IntegrityError:
            logger.info(
                "Reminder already queued by another worker: appointment=%s type=%s",
                job.appointment_id,
                job.reminder_type,
            )
            return False
        return True

    async def claim_due(self, db: AsyncSession, now: datetime, limit: int) -> list[ReminderJob]:
        """Move up to ``limit`` due pending jobs to processing and return them.

        Rows locked by another claimer are skipped rather than waited on.
        Only rows this UPDATE actually changed are returned.
        """
        due = (
            select(ReminderJob.id)
            .where(
                ReminderJob.status == ReminderStatus.PENDING.value,
                ReminderJob.scheduled_time <= now,
            )
            .order_by(ReminderJob.scheduled_time.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        result = await db.execute(
            update(ReminderJob)
            .where(
                ReminderJob.id.in_(due),
                ReminderJob.status == ReminderStatus.PENDING.value,
            )
            .values(status=ReminderStatus.PROCESSING.value)
            .returning(ReminderJob)
            .execution_options(synchronize_session=False)
        )
        jobs = list(result.scalars().all())
        jobs.sort(key=lambda j: j.scheduled_time)
        return jobs

    async def _transition(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        expected: ReminderStatus,
        **values: object,
    ) -> int:
        result = await db.execute(
            update(ReminderJob)
            .where(
                ReminderJob.id == job_id,
                ReminderJob.status == expected.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]

    async def mark_sent(
        self,
        db: AsyncSession,
        job_id: uuid.UUID,
        sent_at: datetime,
        message_id: str | None,
    ) -> bool:
        changed = await self._transition(
            db,
            job_id,
            ReminderStatus.PROCESSING,
            status=ReminderStatus.SENT.value,
            sent_at=sent_at,
            gateway_message_id=message_id,
        )
        return changed == 1

    async def release_for_retry(self, db: AsyncSession, job_id: uuid.UUID, attempts: int, error: str) -> bool:
        changed = await self._transition(
            db,
            job_id,
            ReminderStatus.PROCESSING,
            status=ReminderStatus.PENDING.value,
            attempts=attempts,
            last_error=error,
        )
        return changed == 1

    async def mark_failed(self, db: AsyncSession, job_id: uuid.UUID, attempts: int, error: str) -> bool:
        changed = await self._transition(
            db,
            job_id,
            ReminderStatus.PROCESSING,
            status=ReminderStatus.FAILED.value,
            attempts=attempts,
            last_error=error,
        )
        return changed == 1

    async def cancel_for_appointment(self, db: AsyncSession, appointment_id: uuid.UUID) -> int:
        """Cancel every pending or processing job of an appointment."""
        result = await db.execute(
            update(ReminderJob)
            .where(
                ReminderJob.appointment_id == appointment_id,
                ReminderJob.status.in_([
                    ReminderStatus.PENDING.value,
                    ReminderStatus.PROCESSING.value,
                ]),
            )
            .values(status=ReminderStatus.CANCELLED.value, last_error="appointment cancelled")
            .execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined]


# Module-level singleton
reminder_job_repository = ReminderJobRepository()
