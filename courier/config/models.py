"""
Pydantic-based configuration models for the Courier server.

Each section reads its own environment prefix; AppConfig composes them and
also reads a local .env file.
"""

import json
import os
from typing import Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

from ..structured_logging.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_JWT_SECRET = "CHANGE_ME"


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="0.0.0.0", description="Server bind address")
    port: int = Field(default=3000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """
    Database configuration.

    An empty URL disables persistence: reads return nothing and writes fail
    with StoreUnavailable, but the server still starts.
    """

    url: str = Field(default="", description="SQLAlchemy async database URL (empty disables persistence)")
    pool_size: int = Field(default=5, description="Number of connections to maintain in pool")
    max_overflow: int = Field(default=10, description="Additional connections beyond pool_size")
    pool_timeout: int = Field(default=30, description="Seconds to wait for connection from pool")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @field_validator("url")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Rewrite sync driver URLs to their async drivers."""
        v = (v or "").strip()
        if v.startswith("postgresql://") or v.startswith("postgres://"):
            v = "postgresql+asyncpg://" + v.split("://", 1)[1]
        elif v.startswith("sqlite://") and not v.startswith("sqlite+aiosqlite://"):
            v = "sqlite+aiosqlite://" + v.split("://", 1)[1]
        return v

    @field_validator("pool_size", "max_overflow", "pool_timeout")
    @classmethod
    def validate_pool_config(cls, v: int) -> int:
        """Validate pool configuration values are positive."""
        if v < 1:
            raise ValueError("Pool configuration values must be at least 1")
        return v

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class AuthConfig(BaseSettings):
    """Bearer token signing configuration."""

    jwt_secret: str = Field(default=DEFAULT_JWT_SECRET, description="HMAC secret used to sign bearer tokens")
    algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_ttl_minutes: int | None = Field(default=None, description="Token lifetime; unset issues non-expiring tokens")

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v:
            raise ValueError("AUTH_JWT_SECRET cannot be empty")
        return v

    @field_validator("algorithm")
    @classmethod
    def validate_algorithm(cls, v: str) -> str:
        if v not in {"HS256", "HS384", "HS512"}:
            raise ValueError(f"Unsupported signing algorithm '{v}'")
        return v

    @field_validator("token_ttl_minutes")
    @classmethod
    def validate_ttl(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("Token lifetime must be at least one minute")
        return v

    model_config = {"env_prefix": "AUTH_", "case_sensitive": False, "extra": "ignore"}


class RealtimeConfig(BaseSettings):
    """Realtime fan-out configuration."""

    broadcast_scope: Literal["all", "participants"] = Field(
        default="all",
        description="'all' re-emits to every connection; 'participants' only to sender/recipient connections",
    )
    allow_self_messages: bool = Field(default=True, description="Accept messages whose sender equals recipient")
    max_text_length: int = Field(default=4000, description="Maximum message body length in characters")
    max_identity_length: int = Field(default=64, description="Maximum username length in characters")
    send_timeout_seconds: float = Field(
        default=5.0, description="Per-connection delivery timeout; a slower peer is dropped"
    )

    @field_validator("max_text_length", "max_identity_length")
    @classmethod
    def validate_limits(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Length limits must be at least 1")
        return v

    @field_validator("send_timeout_seconds")
    @classmethod
    def validate_send_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Send timeout must be positive")
        return v

    model_config = {"env_prefix": "REALTIME_", "case_sensitive": False, "extra": "ignore"}


class UploadConfig(BaseSettings):
    """File upload storage configuration."""

    dir: str = Field(default="uploads", description="Directory that receives uploaded files")
    max_bytes: int = Field(default=10 * 1024 * 1024, description="Maximum upload size in bytes")

    model_config = {"env_prefix": "UPLOAD_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="human", description="Log format")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        valid_formats = ["json", "human"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_dict(self) -> dict[str, Any]:
        return {"environment": self.environment, "level": self.level, "format": self.format}


class CORSConfig(BaseSettings):
    """CORS configuration."""

    allow_origins: list[str] = Field(default_factory=lambda: ["*"], description="Allowed origins")
    allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    allow_headers: list[str] = Field(default_factory=lambda: ["Content-Type", "Authorization"])

    @model_validator(mode="before")
    @classmethod
    def _read_csv_env(cls, data: Any) -> Any:
        """Accept comma-separated environment values as well as JSON lists."""
        data = dict(data or {})
        for key in ("allow_origins", "allow_methods", "allow_headers"):
            raw = os.getenv(f"CORS_{key.upper()}")
            if raw is not None and key not in data:
                data[key] = _parse_env_list(raw)
        return data

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
        **_kwargs,
    ):
        # List fields are read by _read_csv_env; skip the JSON-only env source.
        return init_settings, dotenv_settings, file_secret_settings

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via get_config().
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    realtime: RealtimeConfig = Field(default_factory=RealtimeConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    @model_validator(mode="after")
    def _check_production_secret(self) -> "AppConfig":
        """Refuse to run production with the placeholder signing secret."""
        if self.logging.environment == "production" and self.auth.jwt_secret == DEFAULT_JWT_SECRET:
            raise ValueError("AUTH_JWT_SECRET must be set in production")
        if self.auth.jwt_secret == DEFAULT_JWT_SECRET:
            logger.warning("Using placeholder JWT secret; set AUTH_JWT_SECRET")
        if not self.database.enabled:
            logger.warning("DATABASE_URL not set; messages will not be persisted")
        return self
