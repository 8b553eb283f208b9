"""HTTP and WebSocket routers for Courier."""
