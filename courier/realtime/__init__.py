"""Realtime delivery: connection registry, fan-out broadcaster and WebSocket handling."""
