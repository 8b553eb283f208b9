"""
Store protocols for the Courier persistence layer.

Explicit typing.Protocol definitions so the broadcaster, the conversation
service and the API layer depend on contracts rather than concrete stores.
"""

# pylint: disable=unnecessary-ellipsis  # Reason: Protocol method bodies use ... per typing.Protocol convention

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from courier.models.message import Message


class MessageStoreProtocol(Protocol):
    """
    Durable, append-only record of direct messages.

    Implemented by courier.persistence.message_store.MessageStore.
    """

    async def append(self, sender: str, recipient: str, text: str) -> Message:
        """Persist a message with a server-assigned timestamp; raises StoreUnavailable."""
        ...

    async def query(self, identity_a: str, identity_b: str) -> Sequence[Message]:
        """Messages between two identities in either direction, oldest first; never raises."""
        ...


class CredentialStoreProtocol(Protocol):
    """Username/password storage used by the login and register endpoints."""

    async def register(self, username: str, password: str) -> None:
        """Create a new identity; raises DuplicateIdentity if it exists."""
        ...

    async def authenticate(self, username: str, password: str) -> str:
        """Return the identity on success; raises InvalidCredentials otherwise."""
        ...


class UploadStoreProtocol(Protocol):
    """Binary upload storage that returns an opaque filename handle."""

    async def save(self, stream: object, original_name: str | None = None) -> str:
        """Persist an uploaded byte stream and return its filename."""
        ...
