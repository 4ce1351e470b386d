"""
Database - ORM Models.

============================================================
PURPOSE
============================================================
SQLAlchemy ORM models for the shared relational store:

- lab_instances: one row per running server process
- lab_studies / lab_participants / lab_sessions /
  lab_responses: business data supplied by the CRUD layer,
  counted by alerting and copied by replication

Every datetime column is timezone-aware UTC.

============================================================
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


# ============================================================
# TYPES
# ============================================================

class UTCDateTime(TypeDecorator):
    """
    DateTime that always round-trips as aware UTC.

    SQLite drops tzinfo on storage; values read back naive
    are re-labelled as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# ============================================================
# BASE
# ============================================================

class Base(DeclarativeBase):
    pass


class TimestampMixin:
    """created_at / updated_at columns shared by every table."""

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )


# ============================================================
# INSTANCE REGISTRY
# ============================================================

class InstanceModel(TimestampMixin, Base):
    """
    A running server process.

    start_time is immutable and decides elections;
    last_heartbeat is refreshed by the owning process.
    """

    __tablename__ = "lab_instances"

    instance_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64))
    hostname: Mapped[Optional[str]] = mapped_column(String(255))
    port: Mapped[Optional[int]] = mapped_column(Integer)
    start_time: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    last_heartbeat: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    instance_metadata: Mapped[Optional[Dict[str, Any]]] = mapped_column(
        "metadata", JSON, default=dict
    )

    __table_args__ = (
        Index("ix_lab_instances_last_heartbeat", "last_heartbeat"),
        Index("ix_lab_instances_start_time", "start_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Instance {self.instance_id[:8] if self.instance_id else 'n/a'} "
            f"primary={self.is_primary} host={self.hostname}>"
        )


# ============================================================
# BUSINESS DATA
# ============================================================

class StudyModel(TimestampMixin, Base):
    __tablename__ = "lab_studies"

    study_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(String(255))
    description: Mapped[Optional[str]] = mapped_column(Text)
    deletion_protection: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class ParticipantModel(TimestampMixin, Base):
    __tablename__ = "lab_participants"

    participant_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid
    )
    public_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)
    private_info: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)


class SessionModel(TimestampMixin, Base):
    """A participant's visit to a study; counted by the sessions alert."""

    __tablename__ = "lab_sessions"

    session_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=new_uuid
    )
    study_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("lab_studies.study_id"), nullable=False
    )
    participant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lab_participants.participant_id")
    )
    user_agent: Mapped[Optional[str]] = mapped_column(String(512))
    finished: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("ix_lab_sessions_created_at", "created_at"),
        Index("ix_lab_sessions_study_id", "study_id"),
    )


class ResponseModel(TimestampMixin, Base):
    __tablename__ = "lab_responses"

    response_id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    session_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("lab_sessions.session_id"), nullable=False
    )
    participant_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("lab_participants.participant_id")
    )
    study_id: Mapped[str] = mapped_column(
        String(255), ForeignKey("lab_studies.study_id"), nullable=False
    )
    name: Mapped[Optional[str]] = mapped_column(String(255))
    payload: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON)

    __table_args__ = (
        Index("ix_lab_responses_session_id", "session_id"),
    )
