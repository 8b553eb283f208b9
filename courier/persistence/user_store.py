"""
Credential store.

Registers usernames with Argon2id password hashes and verifies login
attempts. Hashing runs in a worker thread so a login never stalls the
event loop that is also serving realtime connections.
"""

from anyio import to_thread
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..auth.argon2_utils import hash_password, verify_password
from ..database import DatabaseManager
from ..exceptions import (
    DuplicateIdentity,
    InvalidCredentials,
    StoreUnavailable,
    ValidationFailure,
    create_error_context,
)
from ..models.user import User
from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)


class UserStore:
    """SQLAlchemy-backed username/password store."""

    def __init__(self, database_manager: DatabaseManager, max_identity_length: int = 64) -> None:
        self.database_manager = database_manager
        self.max_identity_length = max_identity_length

    def _validate(self, username: str, password: str) -> None:
        context = create_error_context(identity=username or None)
        if not username or not username.strip():
            raise ValidationFailure("Username must not be empty", context, field="username")
        if len(username) > self.max_identity_length:
            raise ValidationFailure(
                f"Username exceeds {self.max_identity_length} characters",
                context,
                field="username",
            )
        if not password:
            raise ValidationFailure("Password must not be empty", context, field="password")

    async def register(self, username: str, password: str) -> None:
        """
        Create a new identity.

        Raises:
            ValidationFailure: If username or password is empty
            DuplicateIdentity: If the username is already registered
            StoreUnavailable: If the database is disabled or unreachable
        """
        self._validate(username, password)
        password_hash = await to_thread.run_sync(hash_password, password)

        try:
            async with self.database_manager.session() as session:
                if await session.get(User, username) is not None:
                    raise DuplicateIdentity(username, create_error_context(identity=username))
                session.add(User(username=username, password_hash=password_hash))
                await session.commit()
        except IntegrityError as e:
            raise DuplicateIdentity(username, create_error_context(identity=username)) from e
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(
                f"Failed to register user: {e}",
                create_error_context(identity=username),
                operation="register",
                details={"original_error": str(e), "error_type": type(e).__name__},
            ) from e

        logger.info("User registered", username=username)

    async def authenticate(self, username: str, password: str) -> str:
        """
        Verify a username/password pair.

        Returns:
            The authenticated identity

        Raises:
            InvalidCredentials: If the user is unknown or the password is wrong
            StoreUnavailable: If the database is disabled or unreachable
        """
        try:
            async with self.database_manager.session() as session:
                user = await session.get(User, username)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(
                f"Failed to load user: {e}",
                create_error_context(identity=username),
                operation="authenticate",
                details={"original_error": str(e), "error_type": type(e).__name__},
            ) from e

        if user is None:
            raise InvalidCredentials(context=create_error_context(identity=username), details={"cause": "unknown_user"})

        if not await to_thread.run_sync(verify_password, password, user.password_hash):
            raise InvalidCredentials(context=create_error_context(identity=username), details={"cause": "bad_password"})

        logger.info("User authenticated", username=username)
        return user.username
