"""Client model — salon customers who receive reminders."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.models.appointment import Appointment


class Client(TimestampMixin, Base):
    """A salon client."""

    __tablename__ = "clients"

    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(30))
    email: Mapped[str | None] = mapped_column(String(255))

    appointments: Mapped[list[Appointment]] = relationship("Appointment", back_populates="client")

    def __repr__(self) -> str:
        return f"<Client name={self.name}>"
