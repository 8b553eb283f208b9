"""
User model for the credential store.

Identities are plain username strings; nothing else in the system holds a
foreign key to this table.
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base
from .message import utc_now


class User(Base):
    """A registered identity and its Argon2id password hash."""

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(length=255), primary_key=True)
    password_hash: Mapped[str] = mapped_column(String(length=255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utc_now, nullable=False)

    def __repr__(self) -> str:
        return f"<User username={self.username!r}>"
