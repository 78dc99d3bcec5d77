"""FastAPI application entry point — wires everything together.

Usage:
    python -m src.main

Starts FastAPI (health check) and the periodic reminder worker.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI

from src.admin.events import emit, start_event_system, stop_event_system, subscribe
from src.channels.whatsapp import whatsapp_gateway
from src.config import settings
from src.db.engine import db_lifespan
from src.reminders.worker import reminder_worker
from src.schemas.events import EventType, SystemEvent
from src.security.audit import audit_on_event

# ── Logging setup ────────────────────────────────────────────────────

logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    stream=sys.stdout,
)
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = logging.getLogger(__name__)

# ── FastAPI lifespan ─────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application startup and shutdown lifecycle."""
    logger.info("Starting salon scheduler (env=%s)", settings.environment)

    # 1. Database + Redis
    async with db_lifespan():
        logger.info("Database initialized")

        # 2. Event system
        await start_event_system()
        logger.info("Event system started")

        # 3. Audit logging, always active (global subscriber)
        subscribe(audit_on_event)
        logger.info("Audit logging subscriber registered")

        await emit(SystemEvent(
            event_type=EventType.SYSTEM_STARTUP,
            data={"environment": settings.environment},
            source_module="main",
        ))

        # 4. Reminder worker
        if settings.reminders.reminder_worker_enabled:
            await reminder_worker.start()
        else:
            logger.warning("REMINDER_WORKER_ENABLED is false; reminders will not be scanned or sent")

        try:
            yield
        finally:
            # Shutdown in reverse order
            logger.info("Shutting down salon scheduler...")

            await reminder_worker.stop()

            await whatsapp_gateway.close()
            logger.info("WhatsApp gateway client closed")

            await emit(SystemEvent(
                event_type=EventType.SYSTEM_SHUTDOWN,
                source_module="main",
            ))
            await stop_event_system()
            logger.info("Event system stopped")

    logger.info("Salon scheduler shutdown complete")


# ── FastAPI app ──────────────────────────────────────────────────────

app = FastAPI(
    title="Salon Scheduler",
    description="Staff availability, booking validation and WhatsApp appointment reminders",
    version="0.1.0",
    lifespan=lifespan,
)


@app.get("/health")
async def health_check() -> dict[str, str | bool]:
    """Health check endpoint."""
    return {
        "status": "ok",
        "environment": settings.environment,
        "reminder_worker": reminder_worker.running,
    }


# ── Entry point ──────────────────────────────────────────────────────

if __name__ == "__main__":
    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_level=settings.log_level.lower(),
    )
