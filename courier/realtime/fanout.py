"""
Fan-out broadcaster.

Handles one send: validate, append to the Message Store, then publish a
"new-message" event through the Connection Registry.

Durability policy: if the store is unavailable the message is still
broadcast live. Connected clients see it, but it will be missing from any
later history read. Every such send is logged as a warning so the data
loss is visible in the logs.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from ..exceptions import StoreUnavailable
from ..models.message import Message
from ..persistence.protocols import MessageStoreProtocol
from ..structured_logging.logging_config import get_logger
from .connection_registry import ConnectionRegistry
from .envelope import NEW_MESSAGE_EVENT, build_event
from .message_validator import MessageValidator

logger = get_logger(__name__)


@dataclass
class BroadcastOutcome:
    """Result of one handle_send call, for logging and tests."""

    persisted: bool
    message: Message | None
    payload: dict[str, str]
    stats: dict[str, Any] = field(default_factory=dict)


class FanoutBroadcaster:
    """
    Persists a message and pushes it to live connections.

    Not idempotent: two identical sends produce two records and two
    broadcasts.
    """

    def __init__(
        self,
        message_store: MessageStoreProtocol,
        registry: ConnectionRegistry,
        validator: MessageValidator | None = None,
        broadcast_scope: Literal["all", "participants"] = "all",
    ) -> None:
        self.message_store = message_store
        self.registry = registry
        self.validator = validator or MessageValidator()
        self.broadcast_scope = broadcast_scope

    async def handle_send(self, sender: str, recipient: str, text: str) -> BroadcastOutcome:
        """
        Validate, persist and broadcast one message.

        The broadcast payload is exactly {"from": sender, "to": recipient,
        "text": text}; it reaches every connection registered when the
        broadcast starts (or only the participants' connections when the
        scope is "participants"), including the sender's own.

        Args:
            sender: Sending identity
            recipient: Receiving identity
            text: Message body

        Returns:
            BroadcastOutcome

        Raises:
            ValidationFailure: If the payload is malformed; nothing is stored or sent
        """
        self.validator.check(sender, recipient, text)

        message: Message | None = None
        try:
            message = await self.message_store.append(sender, recipient, text)
        except StoreUnavailable as e:
            logger.warning(
                "Message not persisted; broadcasting anyway",
                sender=sender,
                recipient=recipient,
                operation=e.operation,
                reason=e.message,
            )

        payload = {"from": sender, "to": recipient, "text": text}
        event = build_event(NEW_MESSAGE_EVENT, payload)
        identities = {sender, recipient} if self.broadcast_scope == "participants" else None
        stats = await self.registry.broadcast(event, identities=identities)

        outcome = BroadcastOutcome(persisted=message is not None, message=message, payload=payload, stats=stats)
        logger.info(
            "Message fanned out",
            sender=sender,
            recipient=recipient,
            persisted=outcome.persisted,
            total_targets=stats.get("total_targets", 0),
            failed_deliveries=stats.get("failed_deliveries", 0),
        )
        return outcome
