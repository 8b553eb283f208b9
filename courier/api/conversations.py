"""
Conversation history endpoints for Courier.

GET /conversations/{other_identity} and its /api/messages alias return the
ordered message history between the token's identity and other_identity.
"""

from typing import Any

from fastapi import APIRouter, Depends, Header

from ..dependencies import get_conversation_service
from ..services.conversation_service import ConversationQueryService

conversation_router = APIRouter(tags=["conversations"])


@conversation_router.get("/conversations/{other_identity}")
@conversation_router.get("/api/messages/{other_identity}")
async def get_conversation(
    other_identity: str,
    authorization: str | None = Header(default=None),
    service: ConversationQueryService = Depends(get_conversation_service),
) -> list[dict[str, Any]]:
    """
    Return the conversation with other_identity, oldest message first.

    The Authorization header may carry the token raw or as "Bearer <token>".
    An unreachable store yields an empty list rather than an error.
    """
    messages = await service.get_conversation(None, other_identity, authorization)
    return [message.to_dict() for message in messages]
