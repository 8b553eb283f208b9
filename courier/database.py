"""
Database configuration for Courier.

This module provides the async engine, session management and schema
initialization. Unlike a module-level singleton, a DatabaseManager is owned
by the ApplicationContainer and passed to the stores that need it.

A manager built without a URL is "disabled": it never creates an engine and
every session request raises StoreUnavailable. This is how the server runs
without a persistence connection string.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from .exceptions import StoreUnavailable, create_error_context
from .metadata import metadata
from .structured_logging.logging_config import get_logger

logger = get_logger(__name__)


def _redact_url(url: str) -> str:
    """Hide the password portion of a database URL for logging."""
    if "@" not in url or "://" not in url:
        return url
    scheme, rest = url.split("://", 1)
    credentials, host = rest.rsplit("@", 1)
    user = credentials.split(":", 1)[0]
    return f"{scheme}://{user}:***@{host}"


class DatabaseManager:
    """
    Manages the database engine and session maker.

    Initialization is lazy: the engine is created on first use (or by
    initialize()), so a manager can be constructed before the event loop
    that will use it is running.
    """

    def __init__(
        self,
        database_url: str | None,
        *,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        echo: bool = False,
    ) -> None:
        self.database_url = database_url or None
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.echo = echo
        self.engine: AsyncEngine | None = None
        self.session_maker: async_sessionmaker[AsyncSession] | None = None
        self.schema_ready = False

    @classmethod
    def from_config(cls, database_config: Any) -> "DatabaseManager":
        """Build a manager from a DatabaseConfig section."""
        return cls(
            database_config.url,
            pool_size=database_config.pool_size,
            max_overflow=database_config.max_overflow,
            pool_timeout=database_config.pool_timeout,
            echo=database_config.echo,
        )

    @property
    def enabled(self) -> bool:
        """True when a database URL is configured."""
        return self.database_url is not None

    def _engine_kwargs(self) -> dict[str, Any]:
        assert self.database_url is not None
        if self.database_url.startswith("sqlite"):
            # In-memory SQLite databases only exist for the lifetime of one connection
            if ":memory:" in self.database_url or self.database_url.rstrip("/").endswith("sqlite+aiosqlite:"):
                return {"poolclass": StaticPool}
            return {}
        return {
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_timeout": self.pool_timeout,
            "pool_pre_ping": True,
        }

    def _initialize_engine(self) -> None:
        if self.engine is not None:
            return
        if not self.enabled:
            raise StoreUnavailable(
                "Persistence is disabled: no database URL configured",
                context=create_error_context(metadata={"operation": "database_initialization"}),
                operation="connect",
            )

        assert self.database_url is not None
        self.engine = create_async_engine(self.database_url, echo=self.echo, **self._engine_kwargs())
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        logger.info("Database engine created", database_url=_redact_url(self.database_url))

    def get_engine(self) -> AsyncEngine:
        """
        Get the database engine, initializing if necessary.

        Raises:
            StoreUnavailable: If persistence is disabled
        """
        self._initialize_engine()
        assert self.engine is not None
        return self.engine

    def get_session_maker(self) -> async_sessionmaker[AsyncSession]:
        """
        Get the async session maker, initializing if necessary.

        Raises:
            StoreUnavailable: If persistence is disabled
        """
        self._initialize_engine()
        assert self.session_maker is not None
        return self.session_maker

    async def ensure_schema(self) -> None:
        """
        Create all tables if they do not exist yet.

        Raises:
            StoreUnavailable: If persistence is disabled or the database is unreachable
        """
        if self.schema_ready:
            return
        engine = self.get_engine()
        try:
            async with engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            raise StoreUnavailable(
                f"Could not initialize database schema: {e}",
                context=create_error_context(metadata={"operation": "create_schema"}),
                operation="create_schema",
                details={"original_error": str(e), "error_type": type(e).__name__},
            ) from e
        self.schema_ready = True
        logger.info("Database schema ready")

    async def initialize(self) -> bool:
        """
        Initialize the engine and schema at startup.

        Never raises: an unreachable or unconfigured database leaves the
        server running in degraded mode.

        Returns:
            True if the database is ready, False otherwise
        """
        if not self.enabled:
            logger.warning("Database disabled; running without persistence")
            return False
        try:
            await self.ensure_schema()
        except StoreUnavailable:
            logger.error("Database unreachable at startup; will retry on first use")
            return False
        return True

    async def ping(self) -> bool:
        """Return True if a trivial query succeeds."""
        if not self.enabled:
            return False
        try:
            async with self.get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Database ping failed", error=str(e), error_type=type(e).__name__)
            return False

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Yield a session, making sure the schema exists first.

        Raises:
            StoreUnavailable: If persistence is disabled or the database is unreachable
        """
        await self.ensure_schema()
        async with self.get_session_maker()() as session:
            yield session

    async def close(self) -> None:
        """Dispose of the engine and its connections."""
        if self.engine is None:
            return
        engine = self.engine
        try:
            await engine.dispose()
            logger.info("Database connections closed")
        except (SQLAlchemyError, OSError, RuntimeError) as e:
            logger.warning("Error disposing database engine", error=str(e), error_type=type(e).__name__)
        finally:
            self.engine = None
            self.session_maker = None
            self.schema_ready = False
