"""
Core Module - Configuration.

============================================================
PURPOSE
============================================================
Reads the process environment into typed configuration
objects, one dataclass per concern.

A .env file in the working directory is loaded first, so
local development does not need exported variables.

============================================================
CONFIGURATION PHILOSOPHY
============================================================
1. Empty strings count as "not set"
2. Booleans are "true" or "false", nothing else
3. Invalid values fail loudly at startup
4. Intervals and windows are in seconds

============================================================
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from .exceptions import InvalidConfigError, MissingConfigError


DEFAULT_VERSION = "1.4.0"

REPLICATION_ROLES = ("source", "destination")


# ============================================================
# ENVIRONMENT READERS
# ============================================================

def get_value_from_env(key: str) -> Optional[str]:
    """Get a raw value, treating empty strings as unset."""
    value = os.environ.get(key)
    if not value:
        return None
    return value


def get_string_from_env(key: str) -> str:
    """Get a required string value."""
    value = get_value_from_env(key)
    if value is None:
        raise MissingConfigError(key, "must not be empty")
    return value


def get_bool_from_env(key: str, default: bool = False) -> bool:
    """Get a boolean value; only "true" and "false" are accepted."""
    value = get_value_from_env(key)
    if value is None:
        return default

    lowered = value.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    raise InvalidConfigError(key, value, 'Only "true" and "false" are supported.')


def get_int_from_env(key: str, default: int) -> int:
    """Get an integer value."""
    value = get_value_from_env(key)
    if value is None:
        return default

    try:
        return int(value)
    except ValueError:
        raise InvalidConfigError(key, value, "Expected an integer.") from None


def normalize_database_url(url: str) -> str:
    """
    Rewrite common database URLs to their async driver variant.

    - postgresql://... -> postgresql+asyncpg://...
    - postgres://...   -> postgresql+asyncpg://...
    - sqlite://...     -> sqlite+aiosqlite://...
    """
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    if url.startswith("sqlite://"):
        return "sqlite+aiosqlite://" + url[len("sqlite://"):]
    return url


# ============================================================
# CONFIGURATION SECTIONS
# ============================================================

@dataclass
class LoggingConfig:
    """Logging output configuration."""

    level: str = "INFO"
    """Console log level."""

    directory: Optional[str] = "logs"
    """Directory for rotating log files (None disables file logging)."""


@dataclass
class DatabaseConfig:
    """Shared relational store configuration."""

    url: str = "sqlite+aiosqlite:///./labsync.db"
    """SQLAlchemy async URL."""

    chunk_size: int = 10000
    """Page size for paginated bulk transfer."""

    echo: bool = False
    """Log SQL statements."""

    auto_migrate: bool = True
    """Apply pending migrations on startup."""


@dataclass
class ApiConfig:
    """HTTP API configuration."""

    api_key: Optional[str] = None
    """Bearer token accepted by protected routes."""


@dataclass
class InstancesConfig:
    """Instance registry and leader election timing."""

    enabled: bool = True

    heartbeat_interval: float = 180.0
    """H: seconds between heartbeats."""

    @property
    def primary_check_interval(self) -> float:
        """2H: seconds between primary checks."""
        return self.heartbeat_interval * 2

    @property
    def stale_threshold(self) -> float:
        """3H: heartbeat age after which an instance is stale."""
        return self.heartbeat_interval * 3


@dataclass
class AlertsConfig:
    """Threshold alerting configuration."""

    enabled: bool = False

    webhook_url: Optional[str] = None
    """Chat webhook that receives notifications."""

    check_interval: float = 60.0
    """Seconds between evaluation rounds."""

    cooldown: float = 3600.0
    """Minimum seconds between two notifications of one alert."""

    scaling_enabled: bool = True
    scaling_threshold: int = 5
    """Alert when more live instances than this are registered."""

    sessions_enabled: bool = True
    sessions_threshold: int = 1000
    """Alert when more sessions than this were created in the window."""

    sessions_window: float = 3600.0
    """Trailing window in seconds for the sessions metric."""


@dataclass
class ReplicationConfig:
    """Replication between deployments."""

    role: Optional[str] = None
    """'source', 'destination' or None."""

    source: Optional[str] = None
    """Base URL of the source deployment."""

    source_api_key: Optional[str] = None
    """Bearer token presented to the source."""

    chunk_size: int = 10000
    """Rows requested per replication page."""

    interval: float = 0.0
    """Seconds between automatic runs (0 disables the timer)."""

    @property
    def is_source(self) -> bool:
        return self.role == "source"

    @property
    def is_destination(self) -> bool:
        return self.role == "destination"


@dataclass
class AppConfig:
    """Complete application configuration."""

    environment: str = "production"
    root: str = "http://localhost"
    host: str = "0.0.0.0"
    port: int = 8787
    version: str = DEFAULT_VERSION

    logging: LoggingConfig = field(default_factory=LoggingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    api: ApiConfig = field(default_factory=ApiConfig)
    instances: InstancesConfig = field(default_factory=InstancesConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)
    replication: ReplicationConfig = field(default_factory=ReplicationConfig)

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


# ============================================================
# LOADER
# ============================================================

def load_config(dotenv: bool = True) -> AppConfig:
    """
    Build the application configuration from the environment.

    Args:
        dotenv: Load a .env file before reading variables

    Returns:
        Validated AppConfig

    Raises:
        MissingConfigError: A required variable is not set
        InvalidConfigError: A variable could not be parsed
    """
    if dotenv:
        load_dotenv()

    logging_dir = os.environ.get("LOGGING_DIR", "logs")

    config = AppConfig(
        environment=get_value_from_env("APP_ENV") or "production",
        root=get_value_from_env("ROOT") or "http://localhost",
        host=get_value_from_env("HOST") or "0.0.0.0",
        port=get_int_from_env("PORT", 8787),
        version=get_value_from_env("APP_VERSION") or DEFAULT_VERSION,
        logging=LoggingConfig(
            level=(get_value_from_env("LOG_LEVEL") or "INFO").upper(),
            directory=logging_dir or None,
        ),
        database=DatabaseConfig(
            url=normalize_database_url(get_string_from_env("DATABASE_URL")),
            chunk_size=get_int_from_env("DATABASE_CHUNK_SIZE", 10000),
            echo=get_bool_from_env("DATABASE_ECHO", False),
            auto_migrate=get_bool_from_env("DATABASE_AUTO_MIGRATE", True),
        ),
        api=ApiConfig(
            api_key=get_value_from_env("DEFAULT_API_KEY"),
        ),
        instances=InstancesConfig(
            enabled=get_bool_from_env("INSTANCES_ENABLED", True),
            heartbeat_interval=get_int_from_env("INSTANCES_HEARTBEAT_INTERVAL", 180),
        ),
        alerts=AlertsConfig(
            enabled=get_bool_from_env("ALERTS_ENABLED", False),
            webhook_url=get_value_from_env("ALERTS_WEBHOOK_URL"),
            check_interval=get_int_from_env("ALERTS_CHECK_INTERVAL", 60),
            cooldown=get_int_from_env("ALERTS_COOLDOWN", 3600),
            scaling_enabled=get_bool_from_env("ALERTS_SCALING_ENABLED", True),
            scaling_threshold=get_int_from_env("ALERTS_SCALING_THRESHOLD", 5),
            sessions_enabled=get_bool_from_env("ALERTS_SESSIONS_ENABLED", True),
            sessions_threshold=get_int_from_env("ALERTS_SESSIONS_THRESHOLD", 1000),
            sessions_window=get_int_from_env("ALERTS_SESSIONS_WINDOW", 3600),
        ),
        replication=ReplicationConfig(
            role=get_value_from_env("REPLICATION_ROLE"),
            source=get_value_from_env("REPLICATION_SOURCE"),
            source_api_key=get_value_from_env("REPLICATION_SOURCE_API_KEY"),
            chunk_size=get_int_from_env("REPLICATION_CHUNK_SIZE", 10000),
            interval=get_int_from_env("REPLICATION_INTERVAL", 0),
        ),
    )

    validate_config(config)
    return config


def validate_config(config: AppConfig) -> None:
    """Cross-field validation."""
    role = config.replication.role
    if role is not None and role not in REPLICATION_ROLES:
        raise InvalidConfigError(
            "REPLICATION_ROLE", role, f"Expected one of: {', '.join(REPLICATION_ROLES)}."
        )

    if config.replication.is_destination and not config.replication.source:
        raise MissingConfigError(
            "REPLICATION_SOURCE", "required when REPLICATION_ROLE is 'destination'"
        )

    if config.database.chunk_size < 1:
        raise InvalidConfigError(
            "DATABASE_CHUNK_SIZE", config.database.chunk_size, "Must be at least 1."
        )

    if config.replication.chunk_size < 1:
        raise InvalidConfigError(
            "REPLICATION_CHUNK_SIZE", config.replication.chunk_size, "Must be at least 1."
        )
