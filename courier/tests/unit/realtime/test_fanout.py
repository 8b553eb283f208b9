"""
Tests for FanoutBroadcaster.

The broadcaster persists first and broadcasts second; a store outage must
not stop live delivery, and a rejected payload must reach neither.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from courier.exceptions import StoreUnavailable, ValidationFailure
from courier.realtime.connection_registry import ConnectionRegistry, RealtimeConnection
from courier.realtime.fanout import FanoutBroadcaster
from courier.realtime.message_validator import MessageValidator


async def _connect(registry: ConnectionRegistry, websocket, identity: str | None = None) -> RealtimeConnection:
    conn = RealtimeConnection(websocket=websocket, identity=identity)
    await registry.register(conn)
    return conn


class TestHandleSend:
    """Persist-then-broadcast behaviour."""

    @pytest.mark.asyncio
    async def test_alice_to_bob_is_stored_and_seen_by_all(self, registry, message_store, mock_websocket_factory):
        """A send reaches every connection and appears in history."""
        alice_ws, bob_ws, carol_ws = (mock_websocket_factory() for _ in range(3))
        await _connect(registry, alice_ws)
        await _connect(registry, bob_ws)
        await _connect(registry, carol_ws)
        broadcaster = FanoutBroadcaster(message_store, registry)

        outcome = await broadcaster.handle_send("alice", "bob", "hi")

        assert outcome.persisted is True
        assert outcome.payload == {"from": "alice", "to": "bob", "text": "hi"}
        assert outcome.stats["successful_deliveries"] == 3
        for ws in (alice_ws, bob_ws, carol_ws):
            ws.send_json.assert_awaited_once()
            sent = ws.send_json.await_args.args[0]
            assert sent["event"] == "new-message"
            assert sent["data"] == {"from": "alice", "to": "bob", "text": "hi"}

        history = await message_store.query("alice", "bob")
        assert [(m.sender, m.recipient, m.text) for m in history] == [("alice", "bob", "hi")]

    @pytest.mark.asyncio
    async def test_text_is_broadcast_unchanged(self, registry, message_store, mock_websocket_factory):
        ws = mock_websocket_factory()
        await _connect(registry, ws)
        text = "  spaced ✉ text\nwith newline  "
        broadcaster = FanoutBroadcaster(message_store, registry)

        await broadcaster.handle_send("alice", "bob", text)

        assert ws.send_json.await_args.args[0]["data"]["text"] == text

    @pytest.mark.asyncio
    async def test_store_down_still_broadcasts(self, registry, disabled_message_store, mock_websocket_factory):
        """A store outage is logged; live delivery still happens."""
        ws = mock_websocket_factory()
        await _connect(registry, ws)
        broadcaster = FanoutBroadcaster(disabled_message_store, registry)

        outcome = await broadcaster.handle_send("alice", "bob", "hi")

        assert outcome.persisted is False
        assert outcome.message is None
        ws.send_json.assert_awaited_once()
        assert await disabled_message_store.query("alice", "bob") == []

    @pytest.mark.asyncio
    async def test_invalid_payload_is_neither_stored_nor_broadcast(self, mock_websocket_factory):
        store = Mock()
        store.append = AsyncMock()
        registry = ConnectionRegistry()
        ws = mock_websocket_factory()
        await _connect(registry, ws)
        broadcaster = FanoutBroadcaster(store, registry)

        with pytest.raises(ValidationFailure) as exc_info:
            await broadcaster.handle_send("alice", "", "hi")

        assert exc_info.value.field == "to"
        store.append.assert_not_awaited()
        ws.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persist_happens_before_broadcast(self, mock_websocket_factory):
        order: list[str] = []
        store = Mock()
        store.append = AsyncMock(side_effect=lambda *args: order.append("append"))
        registry = ConnectionRegistry()
        ws = mock_websocket_factory()
        ws.send_json = AsyncMock(side_effect=lambda _event: order.append("broadcast"))
        await _connect(registry, ws)
        broadcaster = FanoutBroadcaster(store, registry)

        await broadcaster.handle_send("alice", "bob", "hi")

        assert order == ["append", "broadcast"]

    @pytest.mark.asyncio
    async def test_store_unavailable_raised_by_append_is_absorbed(self, mock_websocket_factory):
        store = Mock()
        store.append = AsyncMock(side_effect=StoreUnavailable("down", operation="append"))
        registry = ConnectionRegistry()
        ws = mock_websocket_factory()
        await _connect(registry, ws)
        broadcaster = FanoutBroadcaster(store, registry)

        outcome = await broadcaster.handle_send("alice", "bob", "hi")

        assert outcome.persisted is False
        ws.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_identical_sends_are_not_deduplicated(self, registry, message_store, mock_websocket_factory):
        ws = mock_websocket_factory()
        await _connect(registry, ws)
        broadcaster = FanoutBroadcaster(message_store, registry)

        await broadcaster.handle_send("alice", "bob", "hi")
        await broadcaster.handle_send("alice", "bob", "hi")

        assert ws.send_json.await_count == 2
        assert len(await message_store.query("alice", "bob")) == 2


class TestBroadcastScope:
    @pytest.mark.asyncio
    async def test_participants_scope_limits_delivery(self, registry, message_store, mock_websocket_factory):
        alice_ws, bob_ws, carol_ws, anon_ws = (mock_websocket_factory() for _ in range(4))
        await _connect(registry, alice_ws, "alice")
        await _connect(registry, bob_ws, "bob")
        await _connect(registry, carol_ws, "carol")
        await _connect(registry, anon_ws)
        broadcaster = FanoutBroadcaster(message_store, registry, broadcast_scope="participants")

        outcome = await broadcaster.handle_send("alice", "bob", "hi")

        assert outcome.stats["total_targets"] == 2
        alice_ws.send_json.assert_awaited_once()
        bob_ws.send_json.assert_awaited_once()
        carol_ws.send_json.assert_not_awaited()
        anon_ws.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_self_message_rejected_when_disallowed(self, registry, message_store):
        broadcaster = FanoutBroadcaster(
            message_store, registry, validator=MessageValidator(allow_self_messages=False)
        )

        with pytest.raises(ValidationFailure):
            await broadcaster.handle_send("alice", "alice", "note to self")

        assert await message_store.query("alice", "alice") == []


class TestStalledPeer:
    @pytest.mark.asyncio
    async def test_handle_send_completes_when_a_peer_stops_reading(self, message_store, mock_websocket_factory):
        registry = ConnectionRegistry(send_timeout=0.05)
        never = asyncio.Event()

        async def stalled_send(_event):
            await never.wait()

        carol_ws = mock_websocket_factory()
        carol_ws.send_json = AsyncMock(side_effect=stalled_send)
        bob_ws = mock_websocket_factory()
        await _connect(registry, carol_ws, "carol")
        await _connect(registry, bob_ws, "bob")
        broadcaster = FanoutBroadcaster(message_store, registry)

        outcome = await asyncio.wait_for(broadcaster.handle_send("alice", "bob", "hi"), timeout=2)

        assert outcome.persisted is True
        assert outcome.stats["successful_deliveries"] == 1
        assert outcome.stats["failed_deliveries"] == 1
        bob_ws.send_json.assert_awaited_once()
        assert registry.identities() == {"bob"}
