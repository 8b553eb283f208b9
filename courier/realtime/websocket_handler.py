"""
WebSocket connection handling for Courier.

One task per connection: the receive loop reads a frame, dispatches it and
awaits the result before reading the next one, so a connection's sends are
processed strictly in arrival order. Results of a send travel back only
through the registry broadcast; errors go back only to the originating
connection.
"""

import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from ..error_types import ErrorMessages, ErrorType
from ..exceptions import CourierError, Unauthorized, ValidationFailure
from ..structured_logging.logging_config import get_logger
from ..utils.error_logging import create_context_from_websocket
from .connection_registry import ConnectionRegistry, RealtimeConnection
from .envelope import SEND_MESSAGE_EVENT, build_error_event
from .fanout import FanoutBroadcaster
from .message_validator import MessageValidator

logger = get_logger(__name__)


async def _send_error(connection: RealtimeConnection, error_type: ErrorType, message: str, **details: Any) -> None:
    """Send an error event to one connection; a dead socket is only logged."""
    try:
        await connection.send(build_error_event(error_type.value, message, **details))
    except (WebSocketDisconnect, RuntimeError, OSError) as e:
        logger.debug("Could not deliver error event", connection_id=connection.connection_id, error=str(e))


async def _handle_send_message(
    connection: RealtimeConnection,
    data: Any,
    broadcaster: FanoutBroadcaster,
    validator: MessageValidator,
) -> None:
    context = create_context_from_websocket(connection.websocket, connection.connection_id)
    context.identity = connection.identity
    context.event = SEND_MESSAGE_EVENT

    payload = validator.parse(data, context)
    if connection.identity is not None and payload.sender != connection.identity:
        raise Unauthorized(
            "Sender does not match the connection's identity",
            context,
            reason="identity_mismatch",
            details={"claimed_sender": payload.sender},
        )
    await broadcaster.handle_send(payload.sender, payload.recipient, payload.text)


async def _dispatch_frame(
    connection: RealtimeConnection,
    raw: str,
    broadcaster: FanoutBroadcaster,
    validator: MessageValidator,
) -> None:
    """Parse and route one inbound text frame."""
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Invalid JSON frame", connection_id=connection.connection_id)
        await _send_error(connection, ErrorType.INVALID_FORMAT, "Invalid JSON format")
        return

    if not isinstance(frame, dict) or not isinstance(frame.get("event"), str):
        await _send_error(connection, ErrorType.INVALID_FORMAT, "Frame must be an object with an 'event' name")
        return

    event_name = frame["event"]
    if event_name != SEND_MESSAGE_EVENT:
        logger.info("Unknown realtime event", connection_id=connection.connection_id, event_name=event_name)
        await _send_error(connection, ErrorType.UNKNOWN_EVENT, f"{ErrorMessages.UNKNOWN_EVENT}: {event_name}")
        return

    try:
        await _handle_send_message(connection, frame.get("data"), broadcaster, validator)
    except ValidationFailure as e:
        await _send_error(connection, ErrorType.VALIDATION_ERROR, e.message, field=e.field)
    except Unauthorized as e:
        await _send_error(connection, ErrorType.AUTHENTICATION_FAILED, e.message, reason=e.reason)


async def handle_websocket_connection(
    websocket: WebSocket,
    registry: ConnectionRegistry,
    broadcaster: FanoutBroadcaster,
    validator: MessageValidator,
    identity: str | None = None,
) -> None:
    """
    Serve one accepted WebSocket until it disconnects.

    Args:
        websocket: An accepted WebSocket
        registry: Connection registry the connection joins for its lifetime
        broadcaster: Fan-out broadcaster handling send-message events
        validator: Payload validator
        identity: Identity bound to this connection, if it authenticated
    """
    connection = RealtimeConnection(websocket=websocket, identity=identity)
    await registry.register(connection)

    try:
        while True:
            try:
                raw = await websocket.receive_text()
            except WebSocketDisconnect as e:
                logger.info("WebSocket disconnected", connection_id=connection.connection_id, code=e.code)
                break
            except RuntimeError as e:
                logger.warning("WebSocket connection lost", connection_id=connection.connection_id, error=str(e))
                break

            try:
                await _dispatch_frame(connection, raw, broadcaster, validator)
            except CourierError as e:
                await _send_error(connection, ErrorType.MESSAGE_PROCESSING_ERROR, e.user_friendly)
            except Exception as e:  # pylint: disable=broad-exception-caught  # Reason: one bad frame must not end the connection
                logger.error(
                    "Error handling WebSocket message",
                    connection_id=connection.connection_id,
                    identity=connection.identity,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                await _send_error(connection, ErrorType.INTERNAL_ERROR, ErrorMessages.INTERNAL_ERROR)
    finally:
        await registry.unregister(connection)
        connection.closed = True
