"""Availability engine — candidate time slots for one staff member on one day.

Pure Python. No DB access: callers pass a StaffSchedule and a snapshot of
the day's appointments. Each candidate start time is classified in a fixed
order and the first failing check wins:

1. outside working hours
2. inside the break
3. service would run past closing, or into the break
4. overlaps an existing active appointment
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Iterator

from src.scheduling.intervals import MINUTES_PER_DAY, Interval, format_minutes, overlaps, within_window
from src.schemas.scheduling import (
    AppointmentInterval,
    SlotUnavailableReason,
    StaffSchedule,
    TimeSlot,
)

DEFAULT_GRANULARITY_MINUTES = 15
DEFAULT_SERVICE_DURATION = 60


def _busy_intervals(
    schedule: StaffSchedule,
    day: dt.date,
    existing_appointments: Iterable[AppointmentInterval],
) -> list[Interval]:
    """Intervals of active appointments for this staff member on this day."""
    return [
        appt.interval
        for appt in existing_appointments
        if appt.staff_id == schedule.staff_id and appt.date == day and appt.is_active
    ]


def _classify(
    start: int,
    duration: int,
    working: Interval,
    break_window: Interval | None,
    busy: list[Interval],
) -> SlotUnavailableReason | None:
    """Return why ``start`` cannot be booked, or None if it can."""
    if not within_window(start, working.start, working.end):
        return SlotUnavailableReason.OUTSIDE_WORKING_HOURS

    if break_window is not None and within_window(start, break_window.start, break_window.end):
        return SlotUnavailableReason.BREAK_TIME

    candidate = Interval.from_duration(start, duration)
    if candidate.end > working.end:
        return SlotUnavailableReason.INSUFFICIENT_TIME_FOR_SERVICE
    if break_window is not None and candidate.start < break_window.start < candidate.end:
        return SlotUnavailableReason.INSUFFICIENT_TIME_FOR_SERVICE

    if any(overlaps(candidate, taken) for taken in busy):
        return SlotUnavailableReason.APPOINTMENT_CONFLICT

    return None


def _iter_slots(
    schedule: StaffSchedule,
    day: dt.date,
    existing_appointments: Iterable[AppointmentInterval],
    service_duration: int,
    granularity_minutes: int,
) -> Iterator[TimeSlot]:
    if granularity_minutes <= 0:
        msg = f"granularity_minutes must be positive, got {granularity_minutes}"
        raise ValueError(msg)
    if service_duration <= 0:
        msg = f"service_duration must be positive, got {service_duration}"
        raise ValueError(msg)

    if not schedule.works_on(day):
        return

    working = schedule.working_window
    break_window = schedule.break_window
    busy = _busy_intervals(schedule, day, existing_appointments)

    # The grid starts on the hour so partial-hour openings show their
    # leading closed slots; it ends on closing time itself (23:59 at most).
    first = working.start - working.start % 60
    last = min(working.end, MINUTES_PER_DAY - 1)
    for start in range(first, last + 1, granularity_minutes):
        reason = _classify(start, service_duration, working, break_window, busy)
        yield TimeSlot(time=format_minutes(start), available=reason is None, reason=reason)


def generate_slots(
    schedule: StaffSchedule,
    day: dt.date,
    existing_appointments: Iterable[AppointmentInterval] = (),
    service_duration: int = DEFAULT_SERVICE_DURATION,
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
) -> list[TimeSlot]:
    """All candidate slots for the day, each marked available or not.

    A day the staff member does not work yields an empty list.
    """
    return list(
        _iter_slots(schedule, day, existing_appointments, service_duration, granularity_minutes)
    )


def find_next_available_slot(
    schedule: StaffSchedule,
    day: dt.date,
    existing_appointments: Iterable[AppointmentInterval] = (),
    service_duration: int = DEFAULT_SERVICE_DURATION,
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
) -> str | None:
    """Earliest available start time (``"HH:MM"``), or None if the day is full."""
    for slot in _iter_slots(schedule, day, existing_appointments, service_duration, granularity_minutes):
        if slot.available:
            return slot.time
    return None
