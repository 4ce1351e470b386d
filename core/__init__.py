"""
Core Module Package.

This package contains the infrastructure pieces every
other package depends on.

Components:
- clock: Testable time abstraction
- config: Environment configuration
- exceptions: Exception hierarchy
- logging_config: Process-wide logging setup
"""

from .clock import ClockProtocol, SystemClock, MockClock, EPOCH, ensure_utc
from .config import AppConfig, load_config
from .exceptions import (
    LabSyncException,
    ConfigurationError,
    MissingConfigError,
    InvalidConfigError,
    SchemaVersionMismatchError,
    UnknownTableError,
    StoreError,
    ReplicationError,
    ReplicationSourceError,
    TransferError,
)

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "EPOCH",
    "ensure_utc",
    "AppConfig",
    "load_config",
    "LabSyncException",
    "ConfigurationError",
    "MissingConfigError",
    "InvalidConfigError",
    "SchemaVersionMismatchError",
    "UnknownTableError",
    "StoreError",
    "ReplicationError",
    "ReplicationSourceError",
    "TransferError",
]
