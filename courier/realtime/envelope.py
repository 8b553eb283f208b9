"""
Event envelope utilities for Courier realtime frames.

Every frame pushed over the realtime channel uses one schema:
- event: str
- data: dict payload, passed through untouched
- timestamp: ISO 8601 UTC with 'Z'
- sequence_number: int (monotonic per-process)
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

NEW_MESSAGE_EVENT = "new-message"
SEND_MESSAGE_EVENT = "send-message"
ERROR_EVENT = "error"


class _SequenceCounter:
    """Process-wide monotonic counter for event sequence numbers."""

    def __init__(self) -> None:
        self._value = 0
        self._lock = threading.Lock()

    def next(self) -> int:
        with self._lock:
            self._value += 1
            return self._value


_sequence = _SequenceCounter()


def utc_now_z() -> str:
    """Return current UTC time in ISO 8601 format with 'Z' suffix."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_event(
    event: str,
    data: dict[str, Any] | None = None,
    *,
    sequence_number: int | None = None,
) -> dict[str, Any]:
    """
    Create a normalized event envelope.

    Args:
        event: Event name, e.g. "new-message"
        data: Event payload
        sequence_number: Optional explicit sequence number

    Returns:
        dict: {"event", "data", "timestamp", "sequence_number"}
    """
    return {
        "event": event,
        "data": data if data is not None else {},
        "timestamp": utc_now_z(),
        "sequence_number": sequence_number if sequence_number is not None else _sequence.next(),
    }


def build_error_event(error_type: str, message: str, **details: Any) -> dict[str, Any]:
    """Create an "error" envelope for the originating connection."""
    data: dict[str, Any] = {"error_type": error_type, "message": message}
    if details:
        data["details"] = details
    return build_event(ERROR_EVENT, data)
