"""
Dependency injection providers for Courier.

FastAPI dependencies that pull components out of the ApplicationContainer
stored on app.state. Route handlers never reach into app.state directly.
"""

from fastapi import Request
from fastapi.websockets import WebSocket

from .container import ApplicationContainer
from .exceptions import ConfigurationError
from .persistence.protocols import CredentialStoreProtocol, UploadStoreProtocol
from .services.conversation_service import ConversationQueryService


def get_container(request: Request) -> ApplicationContainer:
    """
    Get the application container from request state.

    This is the base dependency that all other dependencies use.
    """
    container = getattr(request.app.state, "container", None)
    if container is None or not container.is_initialized:
        raise ConfigurationError("ApplicationContainer not initialized - ensure the lifespan has run")
    return container


def get_websocket_container(websocket: WebSocket) -> ApplicationContainer:
    """WebSocket counterpart of get_container."""
    container = getattr(websocket.app.state, "container", None)
    if container is None or not container.is_initialized:
        raise ConfigurationError("ApplicationContainer not initialized - ensure the lifespan has run")
    return container


def get_conversation_service(request: Request) -> ConversationQueryService:
    service = get_container(request).conversation_service
    assert service is not None
    return service


def get_user_store(request: Request) -> CredentialStoreProtocol:
    store = get_container(request).user_store
    assert store is not None
    return store


def get_upload_store(request: Request) -> UploadStoreProtocol:
    store = get_container(request).upload_store
    assert store is not None
    return store
