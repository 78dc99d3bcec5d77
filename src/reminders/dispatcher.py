"""Reminder dispatcher — claims due ReminderJobs and sends them.

Claim protocol: due pending jobs are flipped to processing by a single
guarded UPDATE (rows locked by another dispatcher are skipped) and the
claim is committed before anything is sent. From then on only this run
writes those jobs, and every write is again guarded by
``status = 'processing'``:

    processing --ok-------------------------> sent     (terminal)
    processing --fail, attempts < max-------> pending  (next run retries)
    processing --fail, attempts >= max------> failed   (terminal)
    processing --gateway session not ready--> failed   (terminal, no retry)

A job cancelled while its send is in flight stays cancelled: the guarded
write after the send simply matches no row.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.events import emit
from src.channels.whatsapp import WhatsAppGateway, normalize_phone, whatsapp_gateway
from src.config import settings
from src.db.engine import async_session_factory
from src.models.enums import MessageDeliveryStatus, ReminderStatus
from src.models.message import WhatsAppMessage
from src.models.reminder import ReminderJob
from src.reminders.repository import ReminderJobRepository, reminder_job_repository
from src.schemas.events import EventType, SystemEvent
from src.schemas.reminders import DispatchSummary, SendResult
from src.security.rate_limiter import RateLimiter, rate_limiter, send_key

logger = logging.getLogger(__name__)

GATEWAY_NOT_READY = "gateway not ready"


def _log_message(
    db: AsyncSession,
    job: ReminderJob,
    status: MessageDeliveryStatus,
    *,
    message_id: str | None = None,
    error: str | None = None,
    sent_at: dt.datetime | None = None,
) -> None:
    """Record one gateway attempt in the outbound message log."""
    db.add(WhatsAppMessage(
        salon_id=job.salon_id,
        appointment_id=job.appointment_id,
        recipient_phone=normalize_phone(job.client_phone),
        recipient_name=job.client_name,
        message_content=job.message_content,
        status=status.value,
        whatsapp_message_id=message_id,
        error_message=error,
        sent_at=sent_at,
    ))


class ReminderDispatcher:
    """Sends claimed reminder jobs through the Messaging Gateway."""

    def __init__(
        self,
        jobs: ReminderJobRepository | None = None,
        gateway: WhatsAppGateway | None = None,
        limiter: RateLimiter | None = None,
        send_delay: float | None = None,
        send_timeout: float | None = None,
    ) -> None:
        self._jobs = jobs or reminder_job_repository
        self._gateway = gateway or whatsapp_gateway
        self._limiter = limiter or rate_limiter
        self._send_delay = (
            settings.reminders.reminder_send_delay_seconds if send_delay is None else send_delay
        )
        self._send_timeout = (
            settings.reminders.reminder_send_timeout_seconds if send_timeout is None else send_timeout
        )

    async def dispatch_due(self, db: AsyncSession, now: dt.datetime, batch_size: int) -> DispatchSummary:
        """Claim up to ``batch_size`` due jobs and process each one.

        Commits after the claim and after every job outcome.
        """
        claimed = await self._jobs.claim_due(db, now, batch_size)
        await db.commit()

        summary = DispatchSummary()
        if not claimed:
            return summary

        # Detached so a rollback below cannot expire them mid-batch
        for job in claimed:
            db.expunge(job)

        logger.info("Claimed %d due reminder jobs", len(claimed))
        has_sent = False
        for job in claimed:
            try:
                if not await self._gateway.is_session_ready(job.salon_id):
                    outcome = await self._fail_not_ready(db, job)
                else:
                    if has_sent and self._send_delay > 0:
                        await asyncio.sleep(self._send_delay)
                    has_sent = True
                    outcome = await self._send(db, job)
            except Exception as exc:
                logger.exception("Unexpected error dispatching reminder %s", job.id)
                await db.rollback()
                outcome = await self._record_failure(db, job, f"unexpected error: {exc!r}")

            await db.commit()
            if outcome is ReminderStatus.SENT:
                summary.sent += 1
            else:
                summary.failed += 1

        return summary

    async def _fail_not_ready(self, db: AsyncSession, job: ReminderJob) -> ReminderStatus:
        """No retry: a disconnected session will not recover within a scan interval."""
        await self._jobs.mark_failed(db, job.id, job.attempts, GATEWAY_NOT_READY)
        logger.warning("Reminder %s failed: WhatsApp session not ready for salon %s", job.id, job.salon_id)
        await emit(SystemEvent(
            event_type=EventType.REMINDER_FAILED,
            salon_id=job.salon_id,
            appointment_id=job.appointment_id,
            data={"job_id": str(job.id), "error": GATEWAY_NOT_READY, "attempts": job.attempts},
            source_module="reminders.dispatcher",
        ))
        return ReminderStatus.FAILED

    async def _wait_for_rate_limit(self, job: ReminderJob) -> None:
        limit = settings.reminders.gateway_sends_per_minute
        allowed, retry_after = await self._limiter.check(send_key(job.salon_id), limit=limit, window=60)
        if not allowed:
            logger.info("Send rate limit reached for salon %s, waiting %ds", job.salon_id, retry_after)
            await asyncio.sleep(retry_after)

    async def _call_gateway(self, job: ReminderJob) -> SendResult:
        """Send with a hard timeout; a timeout or any gateway error counts as a failed send."""
        try:
            return await asyncio.wait_for(
                self._gateway.send(job.salon_id, job.client_phone, job.message_content),
                timeout=self._send_timeout,
            )
        except asyncio.TimeoutError:
            return SendResult(ok=False, error=f"gateway timeout after {self._send_timeout:g}s")
        except Exception as exc:
            logger.exception("WhatsApp gateway raised while sending reminder %s", job.id)
            return SendResult(ok=False, error=f"gateway error: {exc!r}")

    async def _send(self, db: AsyncSession, job: ReminderJob) -> ReminderStatus:
        await self._wait_for_rate_limit(job)
        result = await self._call_gateway(job)

        if result.ok:
            sent_at = dt.datetime.now(dt.UTC)
            if not await self._jobs.mark_sent(db, job.id, sent_at, result.message_id):
                logger.warning("Reminder %s was sent but is no longer processing (cancelled?)", job.id)
            _log_message(db, job, MessageDeliveryStatus.SENT, message_id=result.message_id, sent_at=sent_at)
            logger.info("Reminder %s sent (appointment=%s)", job.id, job.appointment_id)
            await emit(SystemEvent(
                event_type=EventType.REMINDER_SENT,
                salon_id=job.salon_id,
                appointment_id=job.appointment_id,
                data={"job_id": str(job.id), "message_id": result.message_id},
                source_module="reminders.dispatcher",
            ))
            return ReminderStatus.SENT

        return await self._record_failure(db, job, result.error or "send failed")

    async def _record_failure(self, db: AsyncSession, job: ReminderJob, error: str) -> ReminderStatus:
        """Count a failed attempt: back to pending, or failed once attempts run out."""
        _log_message(db, job, MessageDeliveryStatus.FAILED, error=error)
        attempts = job.attempts + 1
        if attempts < job.max_attempts:
            await self._jobs.release_for_retry(db, job.id, attempts, error)
            status = ReminderStatus.PENDING
            event_type = EventType.REMINDER_RETRY
        else:
            await self._jobs.mark_failed(db, job.id, attempts, error)
            status = ReminderStatus.FAILED
            event_type = EventType.REMINDER_FAILED

        logger.warning(
            "Reminder %s send failed (attempt %d/%d): %s",
            job.id,
            attempts,
            job.max_attempts,
            error,
        )
        await emit(SystemEvent(
            event_type=event_type,
            salon_id=job.salon_id,
            appointment_id=job.appointment_id,
            data={"job_id": str(job.id), "error": error, "attempts": attempts},
            source_module="reminders.dispatcher",
        ))
        return status


# Module-level singleton
reminder_dispatcher = ReminderDispatcher()


async def dispatch_all(now: dt.datetime | None = None, batch_size: int | None = None) -> DispatchSummary:
    """One dispatch run with its own DB session. Never raises."""
    now = now or dt.datetime.now(dt.UTC)
    batch_size = batch_size or settings.reminders.reminder_batch_size

    try:
        async with async_session_factory() as db:
            summary = await reminder_dispatcher.dispatch_due(db, now, batch_size)
    except Exception:
        logger.exception("Reminder dispatch run failed")
        return DispatchSummary()

    if summary.sent or summary.failed:
        await emit(SystemEvent(
            event_type=EventType.REMINDERS_DISPATCHED,
            data=summary.model_dump(),
            source_module="reminders.dispatcher",
        ))
        logger.info("Reminder dispatch complete: sent=%d failed=%d", summary.sent, summary.failed)
    return summary
