"""Staff model — salon employees whose calendars are booked."""

from __future__ import annotations

import uuid
from datetime import time
from typing import TYPE_CHECKING

from sqlalchemy import String, Time
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.appointment import Appointment


class Staff(TimestampMixin, Base):
    """A stylist/therapist with a weekly working window."""

    __tablename__ = "staff"

    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)

    # Profile
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))

    # Weekly schedule
    working_hours_start: Mapped[time] = mapped_column(Time, nullable=False)
    working_hours_end: Mapped[time] = mapped_column(Time, nullable=False)
    break_start: Mapped[time | None] = mapped_column(Time)
    break_end: Mapped[time | None] = mapped_column(Time)
    working_days: Mapped[list[str]] = mapped_column(
        ARRAY(String(10)), nullable=False, default=list, comment="Lower-case weekday names"
    )

    is_active: Mapped[bool] = mapped_column(default=True)

    # Relationships
    appointments: Mapped[list[Appointment]] = relationship("Appointment", back_populates="staff")

    def __repr__(self) -> str:
        return f"<Staff name={self.name} active={self.is_active}>"
