"""
Database Package.

Async SQLAlchemy access to the shared relational store,
ORM models and schema versioning.
"""

from .engine import Database
from .models import (
    Base,
    UTCDateTime,
    TimestampMixin,
    InstanceModel,
    StudyModel,
    ParticipantModel,
    SessionModel,
    ResponseModel,
)
from .versioning import get_db_version, get_head_revision, run_migrations

__all__ = [
    "Database",
    "Base",
    "UTCDateTime",
    "TimestampMixin",
    "InstanceModel",
    "StudyModel",
    "ParticipantModel",
    "SessionModel",
    "ResponseModel",
    "get_db_version",
    "get_head_revision",
    "run_migrations",
]
