"""
Chat Repository - The storage operations used by the chat engine.

All SQLAlchemy failures are logged and re-raised as DatabaseError, so
callers deal with one exception type. Facts leave the repository as
memory-layer UserFact objects and symptoms as plain dicts, never as
session-bound ORM rows.
"""
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nestchat.core.exceptions import DatabaseError
from nestchat.core.logging_config import get_logger
from nestchat.database.connection import DatabaseConnection, get_database
from nestchat.database.init_db import init_tables
from nestchat.database.models import ChatMessage, StoredFact, Symptom, SystemSetting, utcnow
from nestchat.memory.conversation import Message, UserFact

logger = get_logger(__name__)


def _to_user_fact(row: StoredFact) -> UserFact:
    return UserFact(key=row.key, value=row.value, confidence=row.confidence, updated_at=row.updated_at)


class ChatRepository:
    """
    Reads and writes messages, facts, symptoms and settings.

    Example:
        >>> repo = ChatRepository(DatabaseConnection("sqlite://"))
        >>> repo.init_tables()
        >>> repo.save_message("user-1", "user", "I'm 20 weeks pregnant")
        1
    """

    def __init__(self, db: Optional[DatabaseConnection] = None):
        self.db = db or get_database()

    @contextmanager
    def _session(self, operation: str) -> Generator[Session, None, None]:
        try:
            with self.db.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"{operation} failed: {e}")
            raise DatabaseError(f"{operation} failed") from e

    def init_tables(self) -> None:
        """Create all tables that don't exist yet."""
        init_tables(self.db)

    def save_message(self, user_id: str, role: str, content: str) -> int:
        """Store a message and return its id."""
        with self._session("save_message") as session:
            row = ChatMessage(user_id=user_id, role=role, content=content)
            session.add(row)
            session.flush()
            return row.id

    def get_recent_messages(self, user_id: str, limit: int = 10) -> List[Message]:
        """The user's last `limit` messages, oldest first."""
        with self._session("get_recent_messages") as session:
            rows = (
                session.query(ChatMessage)
                .filter(ChatMessage.user_id == user_id)
                .order_by(ChatMessage.id.desc())
                .limit(limit)
                .all()
            )
            return [Message(row.role, row.content, row.created_at) for row in reversed(rows)]

    def get_user_facts(self, user_id: str) -> List[UserFact]:
        """All facts for a user, ordered by key."""
        with self._session("get_user_facts") as session:
            rows = (
                session.query(StoredFact)
                .filter(StoredFact.user_id == user_id)
                .order_by(StoredFact.key)
                .all()
            )
            return [_to_user_fact(row) for row in rows]

    def save_or_update_fact(self, user_id: str, key: str, value: str, confidence: float) -> UserFact:
        """
        Insert a fact, or replace it only if the new confidence is higher.

        Returns:
            The fact as stored after the call
        """
        with self._session("save_or_update_fact") as session:
            row = (
                session.query(StoredFact)
                .filter(StoredFact.user_id == user_id, StoredFact.key == key)
                .one_or_none()
            )

            if row is None:
                row = StoredFact(user_id=user_id, key=key, value=value, confidence=confidence)
                session.add(row)
                session.flush()
                logger.debug(f"Stored new fact for user={user_id}: {key}")
            elif confidence > row.confidence:
                row.value = value
                row.confidence = confidence
                row.updated_at = utcnow()
                session.flush()
                logger.debug(f"Updated fact for user={user_id}: {key}")

            return _to_user_fact(row)

    def save_symptom(
        self,
        user_id: str,
        symptom_type: str,
        description: str,
        severity: str,
        frequency: str,
        onset_time: str,
        associated_symptoms: List[str],
    ) -> int:
        with self._session("save_symptom") as session:
            row = Symptom(
                user_id=user_id,
                symptom_type=symptom_type,
                description=description,
                severity=severity,
                frequency=frequency,
                onset_time=onset_time,
                associated_symptoms=list(associated_symptoms),
            )
            session.add(row)
            session.flush()
            return row.id

    def get_recent_symptoms(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Newest first."""
        with self._session("get_recent_symptoms") as session:
            rows = (
                session.query(Symptom)
                .filter(Symptom.user_id == user_id)
                .order_by(Symptom.reported_at.desc(), Symptom.id.desc())
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]

    def get_system_setting(self, key: str) -> Optional[str]:
        with self._session("get_system_setting") as session:
            row = session.get(SystemSetting, key)
            return row.value if row else None

    def set_system_setting(self, key: str, value: str) -> None:
        with self._session("set_system_setting") as session:
            row = session.get(SystemSetting, key)
            if row is None:
                session.add(SystemSetting(key=key, value=value))
            else:
                row.value = value


# Singleton instance
_repository: Optional[ChatRepository] = None


def get_chat_repository() -> ChatRepository:
    """Get or create the global ChatRepository on the global connection."""
    global _repository
    if _repository is None:
        _repository = ChatRepository()
    return _repository


def reset_chat_repository() -> None:
    """Reset the global ChatRepository (useful for testing)."""
    global _repository
    _repository = None
