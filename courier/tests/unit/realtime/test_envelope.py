"""Tests for realtime event envelopes."""

from courier.realtime.envelope import (
    ERROR_EVENT,
    NEW_MESSAGE_EVENT,
    build_error_event,
    build_event,
    utc_now_z,
)


def test_build_event_shape():
    data = {"from": "alice", "to": "bob", "text": "hi"}

    event = build_event(NEW_MESSAGE_EVENT, data)

    assert event["event"] == "new-message"
    assert event["data"] is data
    assert event["timestamp"].endswith("Z")
    assert isinstance(event["sequence_number"], int)


def test_sequence_numbers_increase():
    first = build_event(NEW_MESSAGE_EVENT)
    second = build_event(NEW_MESSAGE_EVENT)

    assert second["sequence_number"] > first["sequence_number"]
    assert first["data"] == {}


def test_explicit_sequence_number():
    assert build_event(NEW_MESSAGE_EVENT, sequence_number=42)["sequence_number"] == 42


def test_build_error_event():
    event = build_error_event("VALIDATION_ERROR", "bad payload", field="text")

    assert event["event"] == ERROR_EVENT
    assert event["data"] == {"error_type": "VALIDATION_ERROR", "message": "bad payload", "details": {"field": "text"}}


def test_build_error_event_without_details():
    assert "details" not in build_error_event("INTERNAL_ERROR", "boom")["data"]


def test_utc_now_z_format():
    stamp = utc_now_z()

    assert stamp.endswith("Z")
    assert "+00:00" not in stamp
