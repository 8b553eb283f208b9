"""
Connection registry for realtime delivery.

Tracks every live WebSocket connection and the identity it is bound to (if
any). The registry is the only component that enumerates connections;
broadcasts take a snapshot of their targets under the registry lock and
perform the sends outside it, so a slow socket never holds up register or
unregister calls.
"""

# pylint: disable=too-many-instance-attributes  # Reason: Connection state needs its websocket, identity, lock and timestamps

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 2.0
DEFAULT_SEND_TIMEOUT_SECONDS = 5.0


@dataclass(eq=False)
class RealtimeConnection:
    """
    One live realtime connection.

    Each connection owns a send lock so concurrent broadcasts never
    interleave frames on the same socket.
    """

    websocket: WebSocket
    identity: str | None = None
    connection_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    established_at: float = field(default_factory=time.time)
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)
    closed: bool = False

    @property
    def is_open(self) -> bool:
        if self.closed:
            return False
        state = getattr(self.websocket, "application_state", None)
        return state != WebSocketState.DISCONNECTED

    async def send(self, event: dict[str, Any]) -> None:
        """Send one JSON frame; raises whatever the transport raises."""
        async with self._send_lock:
            await self.websocket.send_json(event)

    async def close(self, code: int = 1000, reason: str = "Connection closed") -> None:
        """Close the underlying socket, ignoring sockets that are already gone."""
        if not self.is_open:
            self.closed = True
            return
        try:
            await asyncio.wait_for(self.websocket.close(code=code, reason=reason), timeout=CLOSE_TIMEOUT_SECONDS)
        except (RuntimeError, OSError, TimeoutError) as e:
            logger.debug("WebSocket already closed", connection_id=self.connection_id, error=str(e))
        finally:
            self.closed = True


class ConnectionRegistry:
    """
    Set of live realtime connections.

    All mutations happen under one asyncio.Lock. Reads used for
    introspection take a snapshot and never block.
    """

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS) -> None:
        self._connections: dict[str, RealtimeConnection] = {}
        self._lock = asyncio.Lock()
        self.send_timeout = send_timeout

    async def register(self, connection: RealtimeConnection) -> None:
        """Add a connection; broadcasts issued after this call include it."""
        async with self._lock:
            self._connections[connection.connection_id] = connection
            total = len(self._connections)
        logger.info(
            "Connection registered",
            connection_id=connection.connection_id,
            identity=connection.identity,
            total_connections=total,
        )

    async def unregister(self, connection: RealtimeConnection) -> bool:
        """
        Remove a connection.

        Idempotent: unregistering an unknown connection is a no-op.

        Returns:
            True if the connection was registered
        """
        async with self._lock:
            removed = self._connections.pop(connection.connection_id, None) is not None
            total = len(self._connections)
        if removed:
            logger.info(
                "Connection unregistered",
                connection_id=connection.connection_id,
                identity=connection.identity,
                total_connections=total,
            )
        return removed

    async def _snapshot(self, identities: set[str] | None) -> list[RealtimeConnection]:
        async with self._lock:
            if identities is None:
                return list(self._connections.values())
            return [conn for conn in self._connections.values() if conn.identity in identities]

    async def _deliver(self, connection: RealtimeConnection, event: dict[str, Any]) -> None:
        """Send to one connection; a peer that stops reading times out."""
        await asyncio.wait_for(connection.send(event), timeout=self.send_timeout)

    async def broadcast(self, event: dict[str, Any], identities: set[str] | None = None) -> dict[str, Any]:
        """
        Send an event to every registered connection, or only to those bound
        to one of the given identities.

        Delivery is best-effort per connection: one failing socket never
        prevents delivery to the others and never fails the broadcast.
        Connections whose delivery fails or exceeds send_timeout are dropped
        from the registry.

        Args:
            event: The event envelope to send
            identities: Optional identity filter

        Returns:
            dict: Broadcast delivery statistics
        """
        targets = await self._snapshot(identities)

        broadcast_stats: dict[str, Any] = {
            "event_name": event.get("event"),
            "total_targets": len(targets),
            "successful_deliveries": 0,
            "failed_deliveries": 0,
        }
        if not targets:
            logger.debug("Broadcast with no targets", event_name=event.get("event"))
            return broadcast_stats

        delivery_results = await asyncio.gather(
            *[self._deliver(conn, event) for conn in targets], return_exceptions=True
        )

        failed: list[RealtimeConnection] = []
        for conn, result in zip(targets, delivery_results, strict=True):
            if isinstance(result, BaseException):
                logger.warning(
                    "Dropping connection after failed delivery",
                    connection_id=conn.connection_id,
                    identity=conn.identity,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                broadcast_stats["failed_deliveries"] += 1
                failed.append(conn)
            else:
                broadcast_stats["successful_deliveries"] += 1

        for conn in failed:
            conn.closed = True
            await self.unregister(conn)

        logger.debug("Broadcast complete", **broadcast_stats)
        return broadcast_stats

    def connections_for(self, identity: str) -> list[RealtimeConnection]:
        """All live connections bound to an identity."""
        return [conn for conn in list(self._connections.values()) if conn.identity == identity]

    def count(self) -> int:
        return len(self._connections)

    def identities(self) -> set[str]:
        """Identities with at least one bound connection."""
        return {conn.identity for conn in list(self._connections.values()) if conn.identity is not None}

    async def close_all(self, code: int = 1001, reason: str = "Server shutting down") -> None:
        """Close and forget every connection; used at shutdown."""
        async with self._lock:
            connections = list(self._connections.values())
            self._connections.clear()
        if connections:
            await asyncio.gather(*[conn.close(code=code, reason=reason) for conn in connections], return_exceptions=True)
        logger.info("All realtime connections closed", closed=len(connections))
