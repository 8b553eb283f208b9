"""
Message model.

Messages are append-only: rows are inserted once by the fan-out broadcaster
and never updated or deleted. created_at is assigned by the server when the
row is written, never taken from the client.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


def utc_now() -> datetime:
    """Current UTC time as a naive datetime (persisted naive UTC)."""
    return datetime.now(UTC).replace(tzinfo=None)


class Message(Base):
    """A direct message between two identities."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("ix_messages_sender_recipient_created", "sender", "recipient", "created_at"),
        Index("ix_messages_recipient_sender_created", "recipient", "sender", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender: Mapped[str] = mapped_column(String(length=255), nullable=False)
    recipient: Mapped[str] = mapped_column(String(length=255), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now, nullable=False)

    def to_dict(self) -> dict[str, Any]:
        """Wire representation used by the HTTP API."""
        return {
            "id": self.id,
            "from": self.sender,
            "to": self.recipient,
            "text": self.text,
            "createdAt": self.created_at.replace(tzinfo=UTC).isoformat().replace("+00:00", "Z"),
        }

    def __repr__(self) -> str:
        return f"<Message id={self.id} {self.sender}->{self.recipient} at={self.created_at.isoformat()}>"
