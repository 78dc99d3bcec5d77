"""WhatsAppMessage model — log of outbound messages sent through the gateway."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin
from src.models.enums import MessageDeliveryStatus


class WhatsAppMessage(TimestampMixin, Base):
    """One outbound WhatsApp message."""

    __tablename__ = "whatsapp_messages"

    salon_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    appointment_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), index=True)

    recipient_phone: Mapped[str] = mapped_column(String(30), nullable=False)
    recipient_name: Mapped[str | None] = mapped_column(String(200))
    message_content: Mapped[str] = mapped_column(Text, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20), default=MessageDeliveryStatus.SENT.value, nullable=False
    )
    whatsapp_message_id: Mapped[str | None] = mapped_column(String(255))
    error_message: Mapped[str | None] = mapped_column(Text)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        preview = self.message_content[:40] if self.message_content else ""
        return f"<WhatsAppMessage to={self.recipient_phone} status={self.status} preview='{preview}...'>"
