"""Booking validator — pre-checks for creating or moving an appointment.

Pure decision functions: no DB access and no side effects. Every check
runs and every problem is reported, so the UI can show all of them at
once. Errors block the booking; warnings are advisory.

The validator is the user-facing pre-check only. The write that follows
a valid result must still be serialized per (staff, date) by the
datastore.
"""

from __future__ import annotations

import datetime as dt
import re
import uuid
from collections.abc import Iterable
from zoneinfo import ZoneInfo

from src.config import settings
from src.scheduling.intervals import (
    MINUTES_PER_DAY,
    Interval,
    format_minutes,
    overlaps,
    to_minutes,
    within_window,
)
from src.schemas.scheduling import (
    AppointmentInterval,
    AppointmentProposal,
    StaffSchedule,
    ValidationCode,
    ValidationIssue,
    ValidationResult,
)

_PHONE_STRIP_RE = re.compile(r"[\s\-().]")
_PHONE_RE = re.compile(r"^\+?[1-9]\d{0,15}$")
_PHONE_MIN_LENGTH = 10


def is_valid_phone_number(phone: str) -> bool:
    """Loose international check: optional ``+``, no leading zero, at least
    10 characters once separators are stripped (the ``+`` counts).
    """
    cleaned = _PHONE_STRIP_RE.sub("", phone)
    return bool(_PHONE_RE.match(cleaned)) and len(cleaned) >= _PHONE_MIN_LENGTH


def _local_now() -> dt.datetime:
    return dt.datetime.now(ZoneInfo(settings.scheduling.salon_timezone))


def _parse_time(
    value: str | dt.time | None,
    field: str,
    label: str,
    errors: list[ValidationIssue],
) -> int | None:
    """Parse a time-of-day field, recording REQUIRED_FIELD / INVALID_TIME errors."""
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(ValidationIssue(
            field=field,
            code=ValidationCode.REQUIRED_FIELD,
            message=f"{label} is required",
        ))
        return None
    try:
        return to_minutes(value)
    except ValueError:
        errors.append(ValidationIssue(
            field=field,
            code=ValidationCode.INVALID_TIME,
            message=f"{label} must be a valid time (HH:MM)",
        ))
        return None


def _check_date(
    day: dt.date,
    start: int | None,
    now: dt.datetime,
    errors: list[ValidationIssue],
    warnings: list[str],
) -> None:
    if day < now.date():
        errors.append(ValidationIssue(
            field="date",
            code=ValidationCode.PAST_DATE,
            message="Appointment date cannot be in the past",
        ))
        return

    if day == now.date() and start is not None:
        now_minutes = now.hour * 60 + now.minute
        if start < now_minutes + settings.scheduling.short_notice_minutes:
            warnings.append(
                f"Appointment is scheduled less than "
                f"{settings.scheduling.short_notice_minutes} minutes from now"
            )


def _check_duration(duration: int, errors: list[ValidationIssue], warnings: list[str]) -> None:
    minimum = settings.scheduling.min_duration_minutes
    if duration < minimum:
        errors.append(ValidationIssue(
            field="duration",
            code=ValidationCode.INVALID_DURATION,
            message=f"Appointment duration must be at least {minimum} minutes",
        ))
    elif duration > settings.scheduling.long_duration_minutes:
        warnings.append(
            f"Appointment duration is unusually long "
            f"(over {settings.scheduling.long_duration_minutes // 60} hours)"
        )


def _check_working_window(
    schedule: StaffSchedule | None,
    day: dt.date,
    candidate: Interval,
    warnings: list[str],
) -> None:
    """Advisory warnings when the booking falls outside the staff's schedule."""
    if schedule is None:
        return

    if not schedule.works_on(day):
        warnings.append(f"Staff member does not work on {day.strftime('%A')}")
        return

    working = schedule.working_window
    if not within_window(candidate.start, working.start, working.end) or candidate.end > working.end:
        warnings.append(
            f"Selected time is outside the staff member's working hours "
            f"({format_minutes(working.start)}–{format_minutes(working.end)})"
        )

    break_window = schedule.break_window
    if break_window is not None and overlaps(candidate, break_window):
        warnings.append(
            f"Appointment overlaps the staff member's break "
            f"({format_minutes(break_window.start)}–{format_minutes(break_window.end)})"
        )


def _check_conflict(
    staff_id: uuid.UUID,
    day: dt.date,
    candidate: Interval,
    existing: Iterable[AppointmentInterval],
    errors: list[ValidationIssue],
    exclude_appointment_id: uuid.UUID | None = None,
) -> None:
    """TIME_CONFLICT if the candidate overlaps any other active booking."""
    for appt in existing:
        if appt.staff_id != staff_id or appt.date != day or not appt.is_active:
            continue
        if exclude_appointment_id is not None and appt.appointment_id == exclude_appointment_id:
            continue
        if overlaps(candidate, appt.interval):
            errors.append(ValidationIssue(
                field="start_time",
                code=ValidationCode.TIME_CONFLICT,
                message=(
                    "This time slot conflicts with an existing appointment "
                    f"({appt.start_time.strftime('%H:%M')}–{appt.end_time.strftime('%H:%M')})"
                ),
            ))
            return


def _result(errors: list[ValidationIssue], warnings: list[str]) -> ValidationResult:
    return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)


def validate_create(
    proposal: AppointmentProposal,
    existing: Iterable[AppointmentInterval] = (),
    *,
    schedule: StaffSchedule | None = None,
    now: dt.datetime | None = None,
) -> ValidationResult:
    """Validate a new booking against field rules and the staff's day.

    Args:
        proposal: The booking as entered.
        existing: Appointments already on the staff member's calendar that day.
        schedule: Staff schedule, for working-hours/break warnings.
        now: Current local time (defaults to now in the salon timezone).
    """
    now = now or _local_now()
    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    # Required fields
    if proposal.client_id is None and not proposal.client_name.strip():
        errors.append(ValidationIssue(
            field="client_name",
            code=ValidationCode.REQUIRED_FIELD,
            message="Client name is required",
        ))
    if proposal.staff_id is None:
        errors.append(ValidationIssue(
            field="staff_id",
            code=ValidationCode.REQUIRED_FIELD,
            message="Staff member selection is required",
        ))
    if not proposal.service.strip():
        errors.append(ValidationIssue(
            field="service",
            code=ValidationCode.REQUIRED_FIELD,
            message="Service selection is required",
        ))
    start = _parse_time(proposal.start_time, "start_time", "Start time", errors)

    _check_date(proposal.date, start, now, errors, warnings)
    _check_duration(proposal.duration, errors, warnings)

    # Price
    if proposal.price < 0:
        errors.append(ValidationIssue(
            field="price",
            code=ValidationCode.INVALID_PRICE,
            message="Price cannot be negative",
        ))
    elif proposal.price > settings.scheduling.high_price_threshold:
        warnings.append(f"Price is unusually high (over {settings.scheduling.high_price_threshold})")

    if proposal.client_phone and not is_valid_phone_number(proposal.client_phone):
        errors.append(ValidationIssue(
            field="client_phone",
            code=ValidationCode.INVALID_PHONE,
            message="Please enter a valid phone number",
        ))

    if start is not None and proposal.duration > 0:
        candidate = Interval.from_duration(start, proposal.duration)
        if candidate.end > MINUTES_PER_DAY:
            errors.append(ValidationIssue(
                field="duration",
                code=ValidationCode.INVALID_DURATION,
                message="Appointment must end by midnight",
            ))
            return _result(errors, warnings)
        _check_working_window(schedule, proposal.date, candidate, warnings)
        if proposal.staff_id is not None:
            _check_conflict(proposal.staff_id, proposal.date, candidate, existing, errors)

    return _result(errors, warnings)


def validate_move(
    appointment_id: uuid.UUID,
    new_staff_id: uuid.UUID | None,
    new_date: dt.date,
    new_start: str | dt.time | None,
    new_end: str | dt.time | None,
    existing: Iterable[AppointmentInterval] = (),
    *,
    schedule: StaffSchedule | None = None,
    now: dt.datetime | None = None,
) -> ValidationResult:
    """Validate moving an appointment to a new staff member, day, or time.

    The appointment's own current interval is never counted as a conflict.
    """
    now = now or _local_now()
    errors: list[ValidationIssue] = []
    warnings: list[str] = []

    if new_staff_id is None:
        errors.append(ValidationIssue(
            field="staff_id",
            code=ValidationCode.REQUIRED_FIELD,
            message="Staff member selection is required",
        ))
    start = _parse_time(new_start, "start_time", "Start time", errors)
    end = _parse_time(new_end, "end_time", "End time", errors)

    _check_date(new_date, start, now, errors, warnings)

    if start is None or end is None:
        return _result(errors, warnings)

    if end == 0:
        end = MINUTES_PER_DAY
    if end <= start:
        errors.append(ValidationIssue(
            field="end_time",
            code=ValidationCode.INVALID_DURATION,
            message="End time must be after start time",
        ))
        return _result(errors, warnings)

    candidate = Interval(start, end)
    _check_duration(candidate.duration, errors, warnings)
    _check_working_window(schedule, new_date, candidate, warnings)
    if new_staff_id is not None:
        _check_conflict(
            new_staff_id,
            new_date,
            candidate,
            existing,
            errors,
            exclude_appointment_id=appointment_id,
        )

    return _result(errors, warnings)
