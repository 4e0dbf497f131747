"""
Conversation Memory - Data structures held per user.

This module provides the records kept by the memory store:
- Message: one entry of the short-term window
- UserFact: one confidence-scored long-term belief about a user
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """
    Represents a single message in a conversation.

    Attributes:
        role: The role of the message sender (user or assistant)
        content: The message content
        timestamp: When the message was created

    Example:
        >>> msg = Message(role="user", content="My feet are swollen")
        >>> msg.to_dict()
        {'role': 'user', 'content': 'My feet are swollen'}
    """
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, str]:
        """Convert to dict format for LLM API (role + content only)."""
        return {"role": self.role, "content": self.content}

    def to_full_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class UserFact:
    """
    A long-term fact about a user.

    A stored fact is only ever replaced by a candidate with strictly
    higher confidence for the same key.
    """
    key: str
    value: str
    confidence: float
    updated_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "value": self.value,
            "confidence": self.confidence,
            "updated_at": self.updated_at.isoformat(),
        }
