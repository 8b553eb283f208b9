"""
Realtime API endpoint for Courier.

The /ws WebSocket carries JSON frames {"event": ..., "data": ...}. A client
may bind its connection to an identity by passing ?token=<bearer token>
(or an Authorization header); an invalid token closes the socket with
policy-violation code 1008 instead of falling back to anonymous.
"""

from fastapi import APIRouter, WebSocket, status

from ..dependencies import get_websocket_container
from ..error_types import ErrorMessages, ErrorType
from ..exceptions import ConfigurationError, Unauthorized
from ..realtime.envelope import build_error_event
from ..realtime.websocket_handler import handle_websocket_connection
from ..structured_logging.logging_config import get_logger
from ..utils.error_logging import create_context_from_websocket

logger = get_logger(__name__)

realtime_router = APIRouter(tags=["realtime"])


@realtime_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for sending and receiving direct messages."""
    await websocket.accept()

    try:
        container = get_websocket_container(websocket)
    except ConfigurationError:
        await websocket.send_json(build_error_event(ErrorType.INTERNAL_ERROR.value, ErrorMessages.SYSTEM_UNAVAILABLE))
        await websocket.close(code=status.WS_1013_TRY_AGAIN_LATER)
        return

    token = websocket.query_params.get("token")
    if token is None:
        token = websocket.headers.get("authorization")

    identity: str | None = None
    if token is not None:
        try:
            identity = container.authenticator.verify(token)
        except Unauthorized as e:
            context = create_context_from_websocket(websocket)
            logger.warning("WebSocket rejected: invalid token", reason=e.reason, context=context.to_dict())
            await websocket.send_json(build_error_event(ErrorType.INVALID_TOKEN.value, e.user_friendly))
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    logger.info("WebSocket connection accepted", identity=identity)
    await handle_websocket_connection(
        websocket,
        container.registry,
        container.broadcaster,
        container.validator,
        identity=identity,
    )
