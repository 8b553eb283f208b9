"""
Message Store.

Durable append-only record of direct messages keyed by sender/recipient
pair and creation time. The write path fails closed with StoreUnavailable;
the read path degrades to an empty result.

There are deliberately no update or delete operations.
"""

from collections.abc import Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError

from ..database import DatabaseManager
from ..exceptions import StoreUnavailable, create_error_context
from ..models.message import Message, utc_now
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)


class MessageStore:
    """SQLAlchemy-backed message store."""

    def __init__(self, database_manager: DatabaseManager) -> None:
        self.database_manager = database_manager

    async def append(self, sender: str, recipient: str, text: str) -> Message:
        """
        Persist a new message with a server-assigned timestamp.

        Args:
            sender: Sending identity
            recipient: Receiving identity
            text: Message body

        Returns:
            The persisted Message

        Raises:
            StoreUnavailable: If the database is disabled or unreachable
        """
        message = Message(sender=sender, recipient=recipient, text=text, created_at=utc_now())
        try:
            async with self.database_manager.session() as session:
                session.add(message)
                await session.commit()
        except StoreUnavailable:
            raise
        except (SQLAlchemyError, OSError) as e:
            context = create_error_context(identity=sender, metadata={"recipient": recipient})
            raise StoreUnavailable(
                f"Failed to persist message: {e}",
                context=context,
                operation="append",
                details={"original_error": str(e), "error_type": type(e).__name__},
            ) from e

        logger.debug("Message persisted", message_id=message.id, sender=sender, recipient=recipient)
        return message

    async def query(self, identity_a: str, identity_b: str) -> Sequence[Message]:
        """
        Return every message between two identities, oldest first.

        The result is direction-agnostic: query(a, b) and query(b, a) return
        the same messages. Ties on created_at are broken by insertion order.

        Returns:
            Ordered messages, or an empty list when the store is unavailable
        """
        statement = (
            select(Message)
            .where(
                or_(
                    and_(Message.sender == identity_a, Message.recipient == identity_b),
                    and_(Message.sender == identity_b, Message.recipient == identity_a),
                )
            )
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        try:
            async with self.database_manager.session() as session:
                result = await session.execute(statement)
                messages = list(result.scalars().all())
        except StoreUnavailable:
            logger.warning("Conversation query skipped; store unavailable", identity_a=identity_a, identity_b=identity_b)
            return []
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                "Conversation query failed; returning empty history",
                identity_a=identity_a,
                identity_b=identity_b,
                error=str(e),
                error_type=type(e).__name__,
            )
            return []

        logger.debug("Conversation queried", identity_a=identity_a, identity_b=identity_b, count=len(messages))
        return messages
