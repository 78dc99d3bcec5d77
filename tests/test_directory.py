"""Tests for the SQL-backed Directory Service.

Covers:
- Window lookup: exact bounds, inclusive end, salon timezone, local midnight
- The outer join that supplies the client phone
- Staff schedule lookup
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, time
from unittest.mock import AsyncMock, MagicMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.dialects import postgresql

from src.directory.service import DirectoryService
from src.models.appointment import Appointment
from src.models.enums import AppointmentStatus
from src.models.staff import Staff

ROME = ZoneInfo("Europe/Rome")
SALON_ID = uuid.uuid4()


def _appointment(day: date, start: time, status: AppointmentStatus = AppointmentStatus.SCHEDULED) -> Appointment:
    return Appointment(
        id=uuid.uuid4(),
        salon_id=SALON_ID,
        staff_id=uuid.uuid4(),
        client_name="Giulia",
        service="Piega",
        date=day,
        start_time=start,
        end_time=time(23, 59),
        status=status.value,
    )


def _db_returning(rows: list[tuple]) -> AsyncMock:
    result = MagicMock()
    result.all.return_value = rows
    db = AsyncMock()
    db.execute = AsyncMock(return_value=result)
    return db


def _compiled(db: AsyncMock):
    stmt = db.execute.call_args.args[0]
    return stmt.compile(dialect=postgresql.dialect())


def _queried_days(db: AsyncMock) -> list[date]:
    params = _compiled(db).params.values()
    return next(v for v in params if isinstance(v, list) and v and isinstance(v[0], date))


# ── Window lookup ────────────────────────────────────────────────────


class TestAppointmentsMatchingWindow:
    @pytest.mark.asyncio()
    async def test_bounds_are_compared_in_salon_time(self):
        """08:00-09:00 UTC is 10:00-11:00 in Rome (CEST)."""
        rows = [
            (_appointment(date(2026, 10, 19), time(9, 59)), "+39 333 000 0001"),
            (_appointment(date(2026, 10, 19), time(10, 0)), "+39 333 000 0002"),
            (_appointment(date(2026, 10, 19), time(10, 59)), "+39 333 000 0003"),
            (_appointment(date(2026, 10, 19), time(11, 0)), "+39 333 000 0004"),
        ]
        db = _db_returning(rows)

        found = await DirectoryService().get_appointments_matching_window(
            db,
            SALON_ID,
            datetime(2026, 10, 19, 8, 0, tzinfo=UTC),
            datetime(2026, 10, 19, 9, 0, tzinfo=UTC),
        )

        assert [a.start_time for a in found] == [time(10, 0), time(10, 59)]
        assert _queried_days(db) == [date(2026, 10, 19)]

    @pytest.mark.asyncio()
    async def test_inclusive_end(self):
        rows = [
            (_appointment(date(2026, 10, 19), time(11, 0)), "+39 333 000 0004"),
            (_appointment(date(2026, 10, 19), time(11, 1)), "+39 333 000 0005"),
        ]

        found = await DirectoryService().get_appointments_matching_window(
            _db_returning(rows),
            SALON_ID,
            datetime(2026, 10, 19, 10, 0, tzinfo=ROME),
            datetime(2026, 10, 19, 11, 0, tzinfo=ROME),
            end_inclusive=True,
        )

        assert [a.start_time for a in found] == [time(11, 0)]

    @pytest.mark.asyncio()
    async def test_window_across_local_midnight(self):
        rows = [
            (_appointment(date(2026, 10, 19), time(23, 15)), "+39 333 000 0001"),
            (_appointment(date(2026, 10, 19), time(23, 45)), "+39 333 000 0002"),
            (_appointment(date(2026, 10, 20), time(0, 15)), "+39 333 000 0003"),
            (_appointment(date(2026, 10, 20), time(0, 45)), "+39 333 000 0004"),
        ]
        db = _db_returning(rows)

        found = await DirectoryService().get_appointments_matching_window(
            db,
            SALON_ID,
            datetime(2026, 10, 19, 23, 30, tzinfo=ROME),
            datetime(2026, 10, 20, 0, 30, tzinfo=ROME),
        )

        assert [(a.date, a.start_time) for a in found] == [
            (date(2026, 10, 19), time(23, 45)),
            (date(2026, 10, 20), time(0, 15)),
        ]
        assert _queried_days(db) == [date(2026, 10, 19), date(2026, 10, 20)]

    @pytest.mark.asyncio()
    async def test_missing_client_row_gives_no_phone(self):
        appt = _appointment(date(2026, 10, 20), time(10, 0), status=AppointmentStatus.CONFIRMED)

        found = await DirectoryService().get_appointments_matching_window(
            _db_returning([(appt, None)]),
            SALON_ID,
            datetime(2026, 10, 20, 0, 0, tzinfo=ROME),
            datetime(2026, 10, 21, 0, 0, tzinfo=ROME),
        )

        assert len(found) == 1
        summary = found[0]
        assert summary.appointment_id == appt.id
        assert summary.client_phone is None
        assert summary.client_name == "Giulia"
        assert summary.status is AppointmentStatus.CONFIRMED

    @pytest.mark.asyncio()
    async def test_query_outer_joins_clients_and_filters_remindable(self):
        db = _db_returning([])

        await DirectoryService().get_appointments_matching_window(
            db,
            SALON_ID,
            datetime(2026, 10, 20, 0, 0, tzinfo=ROME),
            datetime(2026, 10, 21, 0, 0, tzinfo=ROME),
        )

        compiled = _compiled(db)
        assert "LEFT OUTER JOIN clients" in str(compiled)
        statuses = next(
            v for v in compiled.params.values() if isinstance(v, list) and v and isinstance(v[0], str)
        )
        assert sorted(statuses) == ["confirmed", "scheduled"]


# ── Staff ────────────────────────────────────────────────────────────


class TestStaffSchedule:
    @pytest.mark.asyncio()
    async def test_unknown_staff(self):
        db = AsyncMock()
        db.get = AsyncMock(return_value=None)

        assert await DirectoryService().get_staff_schedule(db, uuid.uuid4()) is None

    @pytest.mark.asyncio()
    async def test_converts_row(self):
        staff = Staff(
            id=uuid.uuid4(),
            salon_id=SALON_ID,
            name="Marco",
            working_hours_start=time(9, 0),
            working_hours_end=time(18, 0),
            break_start=time(13, 0),
            break_end=time(14, 0),
            working_days=["monday", "tuesday"],
        )
        db = AsyncMock()
        db.get = AsyncMock(return_value=staff)

        schedule = await DirectoryService().get_staff_schedule(db, staff.id)

        assert schedule.staff_id == staff.id
        assert schedule.working_hours_start == time(9, 0)
        assert schedule.break_end == time(14, 0)
        assert schedule.working_days == frozenset({"monday", "tuesday"})
