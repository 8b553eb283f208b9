"""Persistence layer: message, credential and upload stores."""

from .message_store import MessageStore
from .upload_store import UploadStore
from .user_store import UserStore

__all__ = ["MessageStore", "UploadStore", "UserStore"]
