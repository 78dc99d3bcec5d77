"""Pydantic schemas for availability and booking validation.

Pure data classes — no DB dependencies. Snapshots of Directory Service
records are converted into these before they reach the availability
engine or the validator.
"""

from __future__ import annotations

import datetime as dt
import uuid
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from src.models.enums import ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus, Weekday
from src.scheduling.intervals import Interval

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class SlotUnavailableReason(str, Enum):
    """Why a candidate slot cannot be booked."""

    OUTSIDE_WORKING_HOURS = "outside_working_hours"
    BREAK_TIME = "break_time"
    INSUFFICIENT_TIME_FOR_SERVICE = "insufficient_time_for_service"
    APPOINTMENT_CONFLICT = "appointment_conflict"


class ValidationCode(str, Enum):
    """Machine-readable booking validation error codes."""

    REQUIRED_FIELD = "REQUIRED_FIELD"
    PAST_DATE = "PAST_DATE"
    INVALID_TIME = "INVALID_TIME"
    INVALID_DURATION = "INVALID_DURATION"
    INVALID_PRICE = "INVALID_PRICE"
    INVALID_PHONE = "INVALID_PHONE"
    TIME_CONFLICT = "TIME_CONFLICT"


# ---------------------------------------------------------------------------
# Directory snapshots
# ---------------------------------------------------------------------------


class StaffSchedule(BaseModel):
    """A staff member's weekly working window."""

    staff_id: uuid.UUID
    working_hours_start: dt.time
    working_hours_end: dt.time
    break_start: dt.time | None = None
    break_end: dt.time | None = None
    working_days: frozenset[str] = Field(default_factory=frozenset)

    model_config = {"frozen": True}

    @field_validator("working_days", mode="before")
    @classmethod
    def normalize_days(cls, v: object) -> frozenset[str]:
        """Accept any iterable of weekday names, case-insensitively."""
        if v is None:
            return frozenset()
        return frozenset(str(day).strip().lower() for day in v)  # type: ignore[union-attr]

    @property
    def working_window(self) -> Interval:
        return Interval.from_times(self.working_hours_start, self.working_hours_end)

    @property
    def break_window(self) -> Interval | None:
        """The break as an interval, or None when no (usable) break is set."""
        if self.break_start is None or self.break_end is None:
            return None
        window = Interval.from_times(self.break_start, self.break_end)
        return window if window.duration > 0 else None

    def works_on(self, day: dt.date) -> bool:
        return Weekday.from_index(day.weekday()).value in self.working_days


class AppointmentInterval(BaseModel):
    """The time an existing appointment occupies on a staff member's day."""

    appointment_id: uuid.UUID | None = None
    staff_id: uuid.UUID
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    model_config = {"frozen": True}

    @property
    def interval(self) -> Interval:
        return Interval.from_times(self.start_time, self.end_time)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_APPOINTMENT_STATUSES


# ---------------------------------------------------------------------------
# Availability output
# ---------------------------------------------------------------------------


class TimeSlot(BaseModel):
    """A candidate start time and whether it can be booked."""

    time: str  # "HH:MM"
    available: bool
    reason: SlotUnavailableReason | None = None


# ---------------------------------------------------------------------------
# Booking validation
# ---------------------------------------------------------------------------


class AppointmentProposal(BaseModel):
    """A booking as submitted by the UI, before any persistence."""

    client_id: uuid.UUID | None = None
    client_name: str = ""
    client_phone: str | None = None
    staff_id: uuid.UUID | None = None
    service: str = ""
    date: dt.date
    start_time: str = ""  # "HH:MM", validated by the booking validator
    duration: int = Field(default=60, description="Minutes")
    price: Decimal = Decimal("0")

    @field_validator("start_time", mode="before")
    @classmethod
    def coerce_start_time(cls, v: object) -> str:
        """Allow ``time`` objects; keep strings verbatim for validation."""
        if v is None:
            return ""
        if isinstance(v, dt.time):
            return v.strftime("%H:%M")
        return str(v)


class ValidationIssue(BaseModel):
    """One blocking problem with a proposed booking."""

    field: str
    code: ValidationCode
    message: str


class ValidationResult(BaseModel):
    """Outcome of a booking validation: every error and warning at once."""

    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def has_error(self, code: ValidationCode) -> bool:
        return any(e.code == code for e in self.errors)
