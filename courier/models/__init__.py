"""SQLAlchemy models for Courier."""

from .base import Base
from .message import Message
from .user import User

__all__ = ["Base", "Message", "User"]
