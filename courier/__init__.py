"""
Courier - realtime direct-messaging backend.

Clients authenticate over HTTP, exchange direct messages over a WebSocket
channel, and read conversation history back over HTTP.
"""

__version__ = "0.1.0"
