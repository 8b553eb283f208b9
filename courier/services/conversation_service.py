"""
Conversation query service.

Returns the ordered history between the caller and another identity after
checking that the caller's bearer token really belongs to the caller.
"""

from collections.abc import Sequence

from ..auth.session_authenticator import SessionAuthenticator
from ..exceptions import Unauthorized, create_error_context
from ..models.message import Message
from ..persistence.protocols import MessageStoreProtocol
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)


class ConversationQueryService:
    """Authorized read access to conversations."""

    def __init__(self, message_store: MessageStoreProtocol, authenticator: SessionAuthenticator) -> None:
        self.message_store = message_store
        self.authenticator = authenticator

    async def get_conversation(
        self,
        caller_identity: str | None,
        other_identity: str,
        auth_token: str | None,
    ) -> Sequence[Message]:
        """
        Return every message between the caller and other_identity, oldest first.

        Args:
            caller_identity: The identity the caller claims; None to take it from the token
            other_identity: The conversation partner
            auth_token: Bearer token presented by the caller

        Returns:
            Ordered messages; empty when the store is unavailable

        Raises:
            Unauthorized: If the token is missing, invalid or belongs to someone else
        """
        verified_identity = self.authenticator.verify(auth_token)
        if caller_identity is not None and caller_identity != verified_identity:
            raise Unauthorized(
                "Token identity does not match caller",
                create_error_context(identity=verified_identity, metadata={"claimed_identity": caller_identity}),
                reason="identity_mismatch",
            )

        messages = await self.message_store.query(verified_identity, other_identity)
        logger.debug(
            "Conversation served",
            caller=verified_identity,
            other=other_identity,
            count=len(messages),
        )
        return messages
