"""Helpers shared by API and integration tests that drive a TestClient."""

from typing import Any

from fastapi.testclient import TestClient


def register_and_login(client: TestClient, username: str, password: str = "pw") -> str:
    """Register a user and return a bearer token for them."""
    assert client.post("/api/register", json={"username": username, "password": password}).status_code == 200
    response = client.post("/api/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return response.json()["token"]


def wait_until_registered(websocket: Any) -> None:
    """Round-trip one frame so the server has registered the connection."""
    websocket.send_json({"event": "ping"})
    reply = websocket.receive_json()
    assert reply["event"] == "error"
    assert reply["data"]["error_type"] == "unknown_event"
