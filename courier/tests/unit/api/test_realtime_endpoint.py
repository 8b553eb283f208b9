"""
Tests for the /ws realtime endpoint.

Each connection does one round-trip before the scenario starts so the
server has registered it before anything is broadcast.
"""

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from courier.app.factory import create_app
from courier.tests.fixtures.client_helpers import register_and_login, wait_until_registered


def _send(websocket, sender: str, recipient: str, text: str) -> None:
    websocket.send_json({"event": "send-message", "data": {"from": sender, "to": recipient, "text": text}})


class TestSendAndReceive:
    def test_message_reaches_every_connection(self, client):
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            wait_until_registered(alice)
            wait_until_registered(bob)

            _send(alice, "alice", "bob", "hi")

            for websocket in (alice, bob):
                frame = websocket.receive_json()
                assert frame["event"] == "new-message"
                assert frame["data"] == {"from": "alice", "to": "bob", "text": "hi"}

    def test_message_is_in_history_once_broadcast(self, client):
        token = register_and_login(client, "bob")

        with client.websocket_connect("/ws") as alice:
            wait_until_registered(alice)
            _send(alice, "alice", "bob", "hi")
            alice.receive_json()

        history = client.get("/conversations/alice", headers={"Authorization": f"Bearer {token}"}).json()
        assert [(m["from"], m["to"], m["text"]) for m in history] == [("alice", "bob", "hi")]

    def test_sends_from_one_connection_keep_their_order(self, client):
        with client.websocket_connect("/ws") as alice:
            wait_until_registered(alice)
            for i in range(3):
                _send(alice, "alice", "bob", f"m{i}")

            texts = [alice.receive_json()["data"]["text"] for _ in range(3)]

        assert texts == ["m0", "m1", "m2"]

    def test_store_down_still_delivers_live(self, disabled_client):
        token = disabled_client.app.state.container.authenticator.issue("bob")

        with disabled_client.websocket_connect("/ws") as alice:
            wait_until_registered(alice)
            _send(alice, "alice", "bob", "hi")
            frame = alice.receive_json()

        assert frame["data"] == {"from": "alice", "to": "bob", "text": "hi"}
        history = disabled_client.get("/conversations/alice", headers={"Authorization": token})
        assert history.status_code == 200
        assert history.json() == []


class TestAuthenticatedConnections:
    def test_bound_identity_can_send_as_itself(self, client):
        token = register_and_login(client, "alice")

        with client.websocket_connect(f"/ws?token={token}") as alice:
            wait_until_registered(alice)
            _send(alice, "alice", "bob", "hi")

            assert alice.receive_json()["event"] == "new-message"

    def test_bound_identity_cannot_impersonate(self, client):
        token = register_and_login(client, "alice")

        with client.websocket_connect(f"/ws?token={token}") as alice:
            wait_until_registered(alice)
            _send(alice, "mallory", "bob", "hi")
            frame = alice.receive_json()

        assert frame["event"] == "error"
        assert frame["data"]["error_type"] == "authentication_failed"
        assert frame["data"]["details"]["reason"] == "identity_mismatch"

    def test_invalid_token_closes_with_policy_violation(self, client):
        with client.websocket_connect("/ws?token=garbage") as websocket:
            frame = websocket.receive_json()
            with pytest.raises(WebSocketDisconnect) as exc_info:
                websocket.receive_json()

        assert frame["data"]["error_type"] == "invalid_token"
        assert exc_info.value.code == 1008


class TestErrorFrames:
    def test_invalid_json(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("not json")
            frame = websocket.receive_json()

        assert frame["data"]["error_type"] == "invalid_format"

    def test_frame_without_event_name(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_json(["send-message"])
            frame = websocket.receive_json()

        assert frame["data"]["error_type"] == "invalid_format"

    def test_validation_error_goes_only_to_sender(self, client):
        with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
            wait_until_registered(alice)
            wait_until_registered(bob)

            alice.send_json({"event": "send-message", "data": {"from": "alice", "to": "bob"}})
            error = alice.receive_json()
            _send(alice, "alice", "bob", "after the error")
            next_for_bob = bob.receive_json()

        assert error["data"]["error_type"] == "validation_error"
        assert error["data"]["details"]["field"] == "text"
        assert next_for_bob["data"]["text"] == "after the error"

    def test_connection_survives_errors(self, client):
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text("{")
            websocket.receive_json()
            _send(websocket, "alice", "bob", "still here")

            assert websocket.receive_json()["data"]["text"] == "still here"


def test_websocket_before_startup_is_refused(app_config):
    test_client = TestClient(create_app(app_config))

    with test_client.websocket_connect("/ws") as websocket:
        frame = websocket.receive_json()
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert frame["data"]["error_type"] == "internal_error"
    assert exc_info.value.code == 1013
