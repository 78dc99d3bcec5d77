"""Tests for the availability engine (slot generation)."""

from __future__ import annotations

import uuid
from datetime import date, time

import pytest

from src.models.enums import AppointmentStatus
from src.scheduling.availability import find_next_available_slot, generate_slots
from src.schemas.scheduling import AppointmentInterval, SlotUnavailableReason, StaffSchedule

STAFF_ID = uuid.uuid4()
MONDAY = date(2026, 10, 19)
SUNDAY = date(2026, 10, 25)


# ── Helpers ──────────────────────────────────────────────────────────


def _schedule(
    start: time = time(9, 0),
    end: time = time(18, 0),
    break_start: time | None = time(13, 0),
    break_end: time | None = time(14, 0),
    days: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"),
) -> StaffSchedule:
    return StaffSchedule(
        staff_id=STAFF_ID,
        working_hours_start=start,
        working_hours_end=end,
        break_start=break_start,
        break_end=break_end,
        working_days=list(days),
    )


def _booking(
    start: time,
    end: time,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    staff_id: uuid.UUID | None = None,
    day: date = MONDAY,
) -> AppointmentInterval:
    return AppointmentInterval(
        appointment_id=uuid.uuid4(),
        staff_id=staff_id or STAFF_ID,
        date=day,
        start_time=start,
        end_time=end,
        status=status,
    )


def _by_time(slots):
    return {s.time: s for s in slots}


# ── Grid ─────────────────────────────────────────────────────────────


class TestSlotGrid:
    """Shape of the candidate grid."""

    def test_fifteen_minute_grid_includes_closing_time(self):
        slots = generate_slots(_schedule(), MONDAY)
        assert slots[0].time == "09:00"
        assert slots[-1].time == "18:00"
        assert len(slots) == 37

    def test_grid_starts_on_the_hour(self):
        """A 09:30 opening still lists 09:00 and 09:15, as closed."""
        slots = _by_time(generate_slots(_schedule(start=time(9, 30)), MONDAY))
        assert slots["09:00"].reason == SlotUnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["09:15"].reason == SlotUnavailableReason.OUTSIDE_WORKING_HOURS
        assert slots["09:30"].available

    def test_custom_granularity(self):
        slots = generate_slots(_schedule(), MONDAY, granularity_minutes=30)
        assert [s.time for s in slots[:3]] == ["09:00", "09:30", "10:00"]

    def test_non_working_day_is_empty(self):
        assert generate_slots(_schedule(), SUNDAY) == []

    def test_working_days_are_case_insensitive(self):
        schedule = _schedule(days=("MONDAY",))
        assert generate_slots(schedule, MONDAY)

    @pytest.mark.parametrize("kwargs", [{"granularity_minutes": 0}, {"service_duration": 0}])
    def test_non_positive_parameters_raise(self, kwargs):
        with pytest.raises(ValueError):
            generate_slots(_schedule(), MONDAY, **kwargs)


# ── Classification ───────────────────────────────────────────────────


class TestSlotReasons:
    """Each unavailable slot carries the first failing reason."""

    def test_closing_time_is_outside_working_hours(self):
        slots = _by_time(generate_slots(_schedule(), MONDAY))
        assert slots["18:00"].reason == SlotUnavailableReason.OUTSIDE_WORKING_HOURS

    def test_break_is_never_available(self):
        slots = _by_time(generate_slots(_schedule(), MONDAY, service_duration=15))
        for t in ("13:00", "13:15", "13:30", "13:45"):
            assert not slots[t].available
            assert slots[t].reason == SlotUnavailableReason.BREAK_TIME
        assert slots["14:00"].available

    def test_service_running_into_break(self):
        slots = _by_time(generate_slots(_schedule(), MONDAY))
        assert slots["12:00"].available
        assert slots["12:15"].reason == SlotUnavailableReason.INSUFFICIENT_TIME_FOR_SERVICE

    def test_service_running_past_closing(self):
        slots = _by_time(generate_slots(_schedule(), MONDAY))
        assert slots["17:00"].available
        assert slots["17:15"].reason == SlotUnavailableReason.INSUFFICIENT_TIME_FOR_SERVICE

    def test_existing_appointment_conflicts(self):
        slots = _by_time(generate_slots(_schedule(), MONDAY, [_booking(time(10, 0), time(11, 0))]))
        assert slots["09:00"].available
        assert slots["09:15"].reason == SlotUnavailableReason.APPOINTMENT_CONFLICT
        assert slots["10:45"].reason == SlotUnavailableReason.APPOINTMENT_CONFLICT
        assert slots["11:00"].available

    def test_zero_length_break_is_ignored(self):
        schedule = _schedule(break_start=time(13, 0), break_end=time(13, 0))
        slots = _by_time(generate_slots(schedule, MONDAY))
        assert slots["13:00"].available
        assert slots["12:30"].available

    def test_no_break(self):
        schedule = _schedule(break_start=None, break_end=None)
        assert all(s.available for s in generate_slots(schedule, MONDAY) if s.time <= "17:00")

    def test_late_shift_closing_at_midnight(self):
        """An 18:00-00:00 shift: the grid stops at 23:45 and a 23:00-00:00 booking blocks the last hour."""
        schedule = _schedule(start=time(18, 0), end=time(0, 0), break_start=None, break_end=None)
        slots = generate_slots(schedule, MONDAY, [_booking(time(23, 0), time(0, 0))], service_duration=15)
        by_time = _by_time(slots)

        assert slots[-1].time == "23:45"
        assert by_time["22:45"].available
        assert by_time["23:30"].reason == SlotUnavailableReason.APPOINTMENT_CONFLICT


class TestExistingAppointmentFilter:
    """Only active bookings of the same staff member on the same day block slots."""

    @pytest.mark.parametrize("status", [
        AppointmentStatus.CANCELLED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
    ])
    def test_inactive_bookings_do_not_block(self, status):
        slots = _by_time(generate_slots(_schedule(), MONDAY, [_booking(time(10, 0), time(11, 0), status)]))
        assert slots["10:00"].available

    def test_in_progress_blocks(self):
        booking = _booking(time(10, 0), time(11, 0), AppointmentStatus.IN_PROGRESS)
        slots = _by_time(generate_slots(_schedule(), MONDAY, [booking]))
        assert not slots["10:00"].available

    def test_other_staff_does_not_block(self):
        booking = _booking(time(10, 0), time(11, 0), staff_id=uuid.uuid4())
        slots = _by_time(generate_slots(_schedule(), MONDAY, [booking]))
        assert slots["10:00"].available

    def test_other_day_does_not_block(self):
        booking = _booking(time(10, 0), time(11, 0), day=date(2026, 10, 20))
        slots = _by_time(generate_slots(_schedule(), MONDAY, [booking]))
        assert slots["10:00"].available


# ── Next available ───────────────────────────────────────────────────


class TestFindNextAvailableSlot:
    def test_after_morning_booking(self):
        """09:00–18:00 with 09:00–10:00 booked → 10:00."""
        existing = [_booking(time(9, 0), time(10, 0))]
        assert find_next_available_slot(_schedule(), MONDAY, existing) == "10:00"

    def test_empty_day_starts_at_opening(self):
        assert find_next_available_slot(_schedule(start=time(9, 30)), MONDAY) == "09:30"

    def test_fully_booked_day(self):
        existing = [_booking(time(9, 0), time(18, 0))]
        assert find_next_available_slot(_schedule(), MONDAY, existing) is None

    def test_non_working_day(self):
        assert find_next_available_slot(_schedule(), SUNDAY) is None

    def test_matches_first_available_generated_slot(self):
        existing = [_booking(time(9, 0), time(9, 45)), _booking(time(10, 30), time(11, 0))]
        slots = generate_slots(_schedule(), MONDAY, existing, service_duration=30)
        first = next(s.time for s in slots if s.available)
        assert find_next_available_slot(_schedule(), MONDAY, existing, service_duration=30) == first == "09:45"
