"""Appointment model — a booked service occupying a staff member's time."""

from __future__ import annotations

import datetime as dt
import uuid
from datetime import time
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, Numeric, String, Time, text
from sqlalchemy.dialects.postgresql import UUID, ExcludeConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin
from src.models.enums import ACTIVE_APPOINTMENT_STATUSES, AppointmentStatus

if TYPE_CHECKING:
    from src.models.client import Client
    from src.models.staff import Staff

# Wall-clock span of an appointment; an end of 00:00 is the following midnight.
SLOT_RANGE_SQL = (
    "tsrange(\"date\" + start_time, "
    "CASE WHEN end_time = time '00:00' THEN (\"date\" + 1) + time '00:00' ELSE \"date\" + end_time END, "
    "'[)')"
)
ACTIVE_STATUS_SQL = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in sorted(ACTIVE_APPOINTMENT_STATUSES, key=lambda s: s.value))
)


class Appointment(TimestampMixin, Base):
    """A client's booking with one staff member on one day.

    Wall-clock `start_time`/`end_time` are in the salon's timezone. Two
    active appointments of the same staff member can never overlap: the
    exclusion constraint rejects the second write (needs btree_gist).
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_staff_date", "staff_id", "date"),
        Index("ix_appointments_salon_date", "salon_id", "date"),
        CheckConstraint(
            "end_time > start_time OR end_time = time '00:00'",
            name="ck_appointments_end_after_start",
        ),
        ExcludeConstraint(
            ("staff_id", "="),
            (text(SLOT_RANGE_SQL), "&&"),
            name="ex_appointments_staff_no_overlap",
            using="gist",
            where=text(ACTIVE_STATUS_SQL),
        ),
    )

    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)

    # Foreign keys
    staff_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("staff.id"), nullable=False
    )
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("clients.id")
    )

    # Denormalized for reminders and walk-ins without a client record
    client_name: Mapped[str] = mapped_column(String(200), nullable=False)
    service: Mapped[str] = mapped_column(String(200), nullable=False)

    # Scheduling
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AppointmentStatus.SCHEDULED.value, nullable=False
    )

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000))

    # Relationships
    staff: Mapped[Staff] = relationship("Staff", back_populates="appointments")
    client: Mapped[Client | None] = relationship("Client", back_populates="appointments")

    def __repr__(self) -> str:
        return f"<Appointment id={self.id} status={self.status} at={self.date} {self.start_time}>"
