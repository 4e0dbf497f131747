"""
Database Models - SQLAlchemy ORM models for persistent storage.

This module defines the durable side of the assistant:
- chat_messages:   every user and assistant message
- user_facts:      one row per (user, fact key), confidence-scored
- symptoms:        structured symptom reports
- system_settings: admin-tunable key/value settings (e.g. ai_name)
"""
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    # Naive UTC: MySQL DATETIME has no zone
    return datetime.now(timezone.utc).replace(tzinfo=None)


class ChatMessage(Base):
    """A single stored message."""
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    role = Column(String(20), nullable=False)  # 'user' or 'assistant'
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "role": self.role,
            "content": self.content,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class StoredFact(Base):
    """
    A long-term fact about a user.

    (user_id, key) is unique; the value only changes when a more
    confident candidate arrives.
    """
    __tablename__ = "user_facts"
    __table_args__ = (UniqueConstraint("user_id", "key", name="uq_user_facts_user_key"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    key = Column(String(100), nullable=False)
    value = Column(Text, nullable=False)
    confidence = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Symptom(Base):
    """A structured symptom report extracted from a user message."""
    __tablename__ = "symptoms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    symptom_type = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(String(20), nullable=False)
    frequency = Column(String(20), nullable=False)
    onset_time = Column(String(50), nullable=False)
    associated_symptoms = Column(JSON, nullable=True)
    is_resolved = Column(Boolean, default=False, nullable=False)
    reported_at = Column(DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "symptom_type": self.symptom_type,
            "description": self.description,
            "severity": self.severity,
            "frequency": self.frequency,
            "onset_time": self.onset_time,
            "associated_symptoms": list(self.associated_symptoms or []),
            "is_resolved": bool(self.is_resolved),
            "reported_at": self.reported_at.isoformat() if self.reported_at else None,
        }


class SystemSetting(Base):
    """Admin-tunable key/value setting."""
    __tablename__ = "system_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
