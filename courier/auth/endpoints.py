"""
Authentication endpoints for Courier.

Username/password registration and login. A successful login returns the
bearer token used by the conversation endpoints and the realtime channel.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ..container import ApplicationContainer
from ..dependencies import get_container, get_user_store
from ..persistence.protocols import CredentialStoreProtocol
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)

auth_router = APIRouter(prefix="/api", tags=["auth"])


class Credentials(BaseModel):
    """Request body for register and login."""

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class RegisterResponse(BaseModel):
    success: bool = True


class LoginResponse(BaseModel):
    token: str


@auth_router.post("/register", response_model=RegisterResponse)
async def register(
    credentials: Credentials,
    user_store: CredentialStoreProtocol = Depends(get_user_store),
) -> RegisterResponse:
    """Create a new identity."""
    await user_store.register(credentials.username, credentials.password)
    return RegisterResponse()


@auth_router.post("/login", response_model=LoginResponse)
async def login(
    credentials: Credentials,
    container: ApplicationContainer = Depends(get_container),
) -> LoginResponse:
    """Verify a username/password pair and issue a bearer token."""
    assert container.user_store is not None and container.authenticator is not None
    identity = await container.user_store.authenticate(credentials.username, credentials.password)
    token = container.authenticator.issue(identity)
    logger.info("Login succeeded", username=identity)
    return LoginResponse(token=token)
