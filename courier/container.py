"""
Dependency injection container for Courier.

The container owns every long-lived component: configuration, the
database manager, the stores, the connection registry and the services
built on top of them. It is created in the application lifespan, stored on
app.state, and handed to request handlers through courier.dependencies.

INITIALIZATION ORDER:
1. Configuration (no dependencies)
2. Database manager (depends on config)
3. Stores (depend on the database manager)
4. Connection registry (no dependencies)
5. Authenticator, broadcaster and query service (depend on the above)
"""

import asyncio

from .auth.session_authenticator import SessionAuthenticator
from .config import AppConfig, get_config
from .database import DatabaseManager
from .persistence.message_store import MessageStore
from .persistence.upload_store import UploadStore
from .persistence.user_store import UserStore
from .realtime.connection_registry import ConnectionRegistry
from .realtime.fanout import FanoutBroadcaster
from .realtime.message_validator import MessageValidator
from .services.conversation_service import ConversationQueryService
from .structured_logging.logging_config import get_logger

logger = get_logger(__name__)


class ApplicationContainer:
    """
    Holds the application's components and manages their lifecycle.

    Construction has no side effects; call initialize() at startup and
    shutdown() when the application stops.
    """

    def __init__(self, config: AppConfig | None = None) -> None:
        self.config: AppConfig | None = config

        self.database_manager: DatabaseManager | None = None
        self.message_store: MessageStore | None = None
        self.user_store: UserStore | None = None
        self.upload_store: UploadStore | None = None

        self.registry: ConnectionRegistry | None = None
        self.validator: MessageValidator | None = None
        self.authenticator: SessionAuthenticator | None = None
        self.broadcaster: FanoutBroadcaster | None = None
        self.conversation_service: ConversationQueryService | None = None

        self.database_ready: bool = False
        self._initialized: bool = False
        self._initialization_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """
        Build every component in dependency order.

        A database that is missing or unreachable does not fail startup;
        the stores run degraded until it becomes reachable.
        """
        async with self._initialization_lock:
            if self._initialized:
                logger.debug("ApplicationContainer already initialized")
                return

            logger.info("Initializing ApplicationContainer...")
            if self.config is None:
                self.config = get_config()
            config = self.config

            self.database_manager = DatabaseManager.from_config(config.database)
            self.database_ready = await self.database_manager.initialize()

            self.message_store = MessageStore(self.database_manager)
            self.user_store = UserStore(self.database_manager, max_identity_length=config.realtime.max_identity_length)
            self.upload_store = UploadStore(config.upload.dir, config.upload.max_bytes)

            self.registry = ConnectionRegistry(send_timeout=config.realtime.send_timeout_seconds)
            self.validator = MessageValidator.from_config(config.realtime)
            self.authenticator = SessionAuthenticator.from_config(config.auth)
            self.broadcaster = FanoutBroadcaster(
                self.message_store,
                self.registry,
                validator=self.validator,
                broadcast_scope=config.realtime.broadcast_scope,
            )
            self.conversation_service = ConversationQueryService(self.message_store, self.authenticator)

            self._initialized = True
            logger.info(
                "ApplicationContainer initialized",
                database_ready=self.database_ready,
                broadcast_scope=config.realtime.broadcast_scope,
            )

    async def shutdown(self) -> None:
        """Close connections and release the database in reverse order."""
        logger.info("Shutting down ApplicationContainer...")
        if self.registry is not None:
            await self.registry.close_all()
        if self.database_manager is not None:
            await self.database_manager.close()
        self._initialized = False
        logger.info("ApplicationContainer shutdown complete")

    @property
    def is_initialized(self) -> bool:
        """Check if container is fully initialized."""
        return self._initialized
