"""Tests for the scheduling service.

Covers:
- Slot listing and next available slot via the Directory Service
- Create/move validation against the staff member's loaded calendar
- Appointment cancellation withdrawing queued reminders
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import pytest

from src.models.enums import AppointmentStatus
from src.scheduling.service import SchedulingService
from src.schemas.events import EventType
from src.schemas.scheduling import (
    AppointmentInterval,
    AppointmentProposal,
    StaffSchedule,
    ValidationCode,
)

STAFF_ID = uuid.uuid4()
MONDAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 18, 18, 0, tzinfo=ZoneInfo("Europe/Rome"))


# ── Helpers ──────────────────────────────────────────────────────────


def _schedule() -> StaffSchedule:
    return StaffSchedule(
        staff_id=STAFF_ID,
        working_hours_start=time(9, 0),
        working_hours_end=time(18, 0),
        break_start=time(13, 0),
        break_end=time(14, 0),
        working_days=["monday", "tuesday"],
    )


def _booking(start: time, end: time, appointment_id: uuid.UUID | None = None) -> AppointmentInterval:
    return AppointmentInterval(
        appointment_id=appointment_id or uuid.uuid4(),
        staff_id=STAFF_ID,
        date=MONDAY,
        start_time=start,
        end_time=end,
    )


def _directory(
    schedule: StaffSchedule | None = None,
    existing: list[AppointmentInterval] | None = None,
    appointment: MagicMock | None = None,
) -> MagicMock:
    directory = MagicMock()
    directory.get_staff_schedule = AsyncMock(return_value=schedule)
    directory.get_appointments_for_staff_date = AsyncMock(return_value=existing or [])
    directory.get_appointment = AsyncMock(return_value=appointment)
    directory.mark_appointment_cancelled = AsyncMock()
    return directory


def _make_appointment(status: str = AppointmentStatus.SCHEDULED.value) -> MagicMock:
    appt = MagicMock()
    appt.id = uuid.uuid4()
    appt.salon_id = uuid.uuid4()
    appt.status = status
    return appt


# ── Availability ─────────────────────────────────────────────────────


class TestGetSlots:
    @pytest.mark.asyncio()
    async def test_slots_reflect_existing_bookings(self):
        directory = _directory(_schedule(), [_booking(time(9, 0), time(10, 0))])
        service = SchedulingService(directory=directory)

        slots = await service.get_slots(AsyncMock(), STAFF_ID, MONDAY)

        by_time = {s.time: s for s in slots}
        assert not by_time["09:00"].available
        assert by_time["10:00"].available
        directory.get_appointments_for_staff_date.assert_awaited_once()

    @pytest.mark.asyncio()
    async def test_unknown_staff(self):
        directory = _directory(schedule=None)
        service = SchedulingService(directory=directory)

        assert await service.get_slots(AsyncMock(), STAFF_ID, MONDAY) == []
        directory.get_appointments_for_staff_date.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_next_available_slot(self):
        service = SchedulingService(directory=_directory(_schedule(), [_booking(time(9, 0), time(10, 0))]))
        assert await service.next_available_slot(AsyncMock(), STAFF_ID, MONDAY) == "10:00"

    @pytest.mark.asyncio()
    async def test_next_available_slot_custom_duration(self):
        service = SchedulingService(directory=_directory(_schedule(), [_booking(time(9, 30), time(10, 0))]))
        assert await service.next_available_slot(AsyncMock(), STAFF_ID, MONDAY, service_duration=30) == "09:00"

    @pytest.mark.asyncio()
    async def test_next_available_slot_unknown_staff(self):
        service = SchedulingService(directory=_directory(schedule=None))
        assert await service.next_available_slot(AsyncMock(), STAFF_ID, MONDAY) is None


# ── Validation ───────────────────────────────────────────────────────


class TestValidate:
    @pytest.mark.asyncio()
    async def test_create_conflict(self):
        service = SchedulingService(directory=_directory(_schedule(), [_booking(time(9, 0), time(10, 0))]))
        proposal = AppointmentProposal(
            client_name="Giulia",
            staff_id=STAFF_ID,
            service="Taglio",
            date=MONDAY,
            start_time="09:30",
        )

        result = await service.validate_create(AsyncMock(), proposal, now=NOW)

        assert result.has_error(ValidationCode.TIME_CONFLICT)

    @pytest.mark.asyncio()
    async def test_create_without_staff_skips_lookup(self):
        directory = _directory(_schedule())
        service = SchedulingService(directory=directory)
        proposal = AppointmentProposal(client_name="Giulia", service="Taglio", date=MONDAY, start_time="10:00")

        result = await service.validate_create(AsyncMock(), proposal, now=NOW)

        assert result.has_error(ValidationCode.REQUIRED_FIELD)
        directory.get_staff_schedule.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_move_ignores_own_slot(self):
        appt_id = uuid.uuid4()
        service = SchedulingService(
            directory=_directory(_schedule(), [_booking(time(9, 0), time(10, 0), appointment_id=appt_id)])
        )

        result = await service.validate_move(AsyncMock(), appt_id, STAFF_ID, MONDAY, "09:30", "10:30", now=NOW)

        assert result.is_valid

    @pytest.mark.asyncio()
    async def test_move_loads_target_staff_calendar(self):
        other_staff = uuid.uuid4()
        directory = _directory(_schedule())
        service = SchedulingService(directory=directory)

        await service.validate_move(AsyncMock(), uuid.uuid4(), other_staff, MONDAY, "11:00", "12:00", now=NOW)

        directory.get_appointments_for_staff_date.assert_awaited_once()
        assert directory.get_appointments_for_staff_date.call_args.args[1:] == (other_staff, MONDAY)


# ── Cancellation ─────────────────────────────────────────────────────


class TestCancelAppointment:
    @pytest.mark.asyncio()
    async def test_cancel_marks_and_withdraws_reminders(self):
        appt = _make_appointment()
        directory = _directory(appointment=appt)
        service = SchedulingService(directory=directory)
        db = AsyncMock()

        with (
            patch("src.scheduling.service.cancel_reminders_for_appointment", new_callable=AsyncMock) as mock_cancel,
            patch("src.scheduling.service.emit", new_callable=AsyncMock) as mock_emit,
        ):
            mock_cancel.return_value = 2
            result = await service.cancel_appointment(db, appt.id, actor_id="staff-1")

        assert result is appt
        directory.mark_appointment_cancelled.assert_awaited_once_with(db, appt)
        mock_cancel.assert_awaited_once_with(db, appt.id)

        event = mock_emit.call_args.args[0]
        assert event.event_type == EventType.APPOINTMENT_CANCELLED
        assert event.appointment_id == appt.id
        assert event.actor_id == "staff-1"
        assert event.data == {"reminders_cancelled": 2}

    @pytest.mark.asyncio()
    async def test_cancel_not_found(self):
        directory = _directory(appointment=None)
        service = SchedulingService(directory=directory)

        with (
            patch("src.scheduling.service.cancel_reminders_for_appointment", new_callable=AsyncMock) as mock_cancel,
            patch("src.scheduling.service.emit", new_callable=AsyncMock) as mock_emit,
        ):
            result = await service.cancel_appointment(AsyncMock(), uuid.uuid4())

        assert result is None
        mock_cancel.assert_not_awaited()
        mock_emit.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_cancel_twice_still_withdraws_reminders(self):
        appt = _make_appointment(status=AppointmentStatus.CANCELLED.value)
        directory = _directory(appointment=appt)
        service = SchedulingService(directory=directory)

        with (
            patch("src.scheduling.service.cancel_reminders_for_appointment", new_callable=AsyncMock) as mock_cancel,
            patch("src.scheduling.service.emit", new_callable=AsyncMock),
        ):
            mock_cancel.return_value = 0
            await service.cancel_appointment(AsyncMock(), appt.id)

        directory.mark_appointment_cancelled.assert_not_awaited()
        mock_cancel.assert_awaited_once()
