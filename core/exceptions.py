"""
Core Module - Exceptions.

============================================================
RESPONSIBILITY
============================================================
Defines the exception hierarchy shared by the registry,
replication and alerting components.

- Transient infrastructure errors are logged and retried
  on the next timer tick
- Configuration errors are fatal to the operation that
  discovered them
- Data errors are rejected at the HTTP boundary

============================================================
EXCEPTION HIERARCHY
============================================================
LabSyncException (base)
├── ConfigurationError
│   ├── MissingConfigError
│   ├── InvalidConfigError
│   ├── SchemaVersionMismatchError
│   └── UnknownTableError
├── StoreError
├── ReplicationError
│   └── ReplicationSourceError
└── TransferError

============================================================
"""

from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# ============================================================
# SEVERITY LEVELS
# ============================================================

class Severity(Enum):
    """Exception severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorClassification(Enum):
    """Classification of error recoverability."""

    TRANSIENT = "transient"
    """Temporary error, the next tick may succeed."""

    NON_RECOVERABLE = "non_recoverable"
    """Permanent error, requires operator intervention."""


# ============================================================
# BASE EXCEPTION
# ============================================================

class LabSyncException(Exception):
    """
    Base exception for all labsync errors.

    All exceptions carry:
    - severity: for log routing
    - classification: transient or not
    - context: for debugging
    - timestamp: when the error occurred
    """

    default_severity: Severity = Severity.MEDIUM
    default_classification: ErrorClassification = ErrorClassification.TRANSIENT

    def __init__(
        self,
        message: str,
        severity: Optional[Severity] = None,
        context: Optional[Dict[str, Any]] = None,
        classification: Optional[ErrorClassification] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)

        self.message = message
        self.severity = severity or self.default_severity
        self.context = context or {}
        self.classification = classification or self.default_classification
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

        if cause:
            self.context["cause_type"] = type(cause).__name__
            self.context["cause_message"] = str(cause)

    @property
    def is_transient(self) -> bool:
        return self.classification == ErrorClassification.TRANSIENT

    def to_dict(self) -> Dict[str, Any]:
        """Serialize exception for logging."""
        return {
            "type": type(self).__name__,
            "message": self.message,
            "severity": self.severity.value,
            "classification": self.classification.value,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "cause": str(self.cause) if self.cause else None,
        }


# ============================================================
# CONFIGURATION ERRORS
# ============================================================

class ConfigurationError(LabSyncException):
    """Error in configuration."""

    default_severity = Severity.HIGH
    default_classification = ErrorClassification.NON_RECOVERABLE


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    def __init__(self, key: str, reason: Optional[str] = None):
        message = f"Missing required configuration: {key}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message=message, context={"config_key": key})
        self.key = key


class InvalidConfigError(ConfigurationError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, reason: str):
        super().__init__(
            message=f"Invalid value for {key}: {value}. {reason}",
            context={"config_key": key, "actual_value": str(value)[:100]},
        )
        self.key = key


class SchemaVersionMismatchError(ConfigurationError):
    """Replication source and destination run different schema versions."""

    def __init__(self, source_version: Optional[str], destination_version: Optional[str]):
        super().__init__(
            message=(
                f"Database version mismatch. Source: {source_version}, "
                f"Destination: {destination_version} (this machine)."
            ),
            context={
                "source_version": source_version,
                "destination_version": destination_version,
            },
        )
        self.source_version = source_version
        self.destination_version = destination_version


class UnknownTableError(ConfigurationError):
    """Requested table is not part of the replicated set."""

    def __init__(self, table_name: str):
        super().__init__(
            message=f'Table "{table_name}" not found',
            context={"table": table_name},
        )
        self.table_name = table_name


# ============================================================
# INFRASTRUCTURE ERRORS
# ============================================================

class StoreError(LabSyncException):
    """The shared relational store failed or is unreachable."""

    default_severity = Severity.HIGH


class ReplicationError(LabSyncException):
    """Base class for replication failures."""

    default_severity = Severity.HIGH


class ReplicationSourceError(ReplicationError):
    """The replication source is unreachable or answered with an error."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", {})
        if status_code is not None:
            context["status_code"] = status_code
        super().__init__(message, context=context, **kwargs)
        self.status_code = status_code


class TransferError(LabSyncException):
    """A paginated query broke the offset/limit contract."""

    default_classification = ErrorClassification.NON_RECOVERABLE
