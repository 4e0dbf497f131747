"""
Memory Manager - Per-user short-term window and long-term fact table.

Each user gets one UserMemory record, created lazily on first write:
- short_term: a bounded deque of the most recent N messages
- facts: key -> UserFact, updated with the monotonic-confidence rule

All state sits behind one RLock; readers always receive copies, so a
caller can never observe a later mutation through a returned list.

Architecture note:
This is an in-memory implementation suitable for single-instance deployments.
Durable facts and messages live in the database; this store is the hot copy.
"""
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from nestchat.core.logging_config import get_logger
from nestchat.memory.conversation import Message, UserFact

logger = get_logger(__name__)

DEFAULT_SHORT_TERM_SIZE = 10


@dataclass
class UserMemory:
    """Everything remembered about one user."""
    short_term: Deque[Message]
    facts: Dict[str, UserFact] = field(default_factory=dict)


class MemoryManager:
    """
    Thread-safe per-user memory store.

    Example:
        >>> manager = MemoryManager(short_term_size=3)
        >>> for text in ["Message 1", "Response 1", "Message 2", "Response 2", "Message 3"]:
        ...     manager.add_message("user-1", Message("user", text))
        >>> [m.content for m in manager.get_short_term_memory("user-1")]
        ['Message 2', 'Response 2', 'Message 3']
    """

    def __init__(self, short_term_size: int = DEFAULT_SHORT_TERM_SIZE):
        if short_term_size < 1:
            raise ValueError("short_term_size must be at least 1")

        self.short_term_size = short_term_size
        self._users: Dict[str, UserMemory] = {}
        self._lock = threading.RLock()

        logger.info(f"MemoryManager initialized: short_term_size={short_term_size}")

    def _get_or_create(self, user_id: str) -> UserMemory:
        memory = self._users.get(user_id)
        if memory is None:
            memory = UserMemory(short_term=deque(maxlen=self.short_term_size))
            self._users[user_id] = memory
        return memory

    def add_message(self, user_id: str, message: Message) -> None:
        """Append a message; the oldest entry is evicted once the window is full."""
        with self._lock:
            self._get_or_create(user_id).short_term.append(message)

    def get_short_term_memory(self, user_id: str) -> List[Message]:
        """Return the window, oldest first. Unknown users get an empty list."""
        with self._lock:
            memory = self._users.get(user_id)
            return list(memory.short_term) if memory else []

    def clear_short_term_memory(self, user_id: str) -> None:
        with self._lock:
            memory = self._users.get(user_id)
            if memory:
                memory.short_term.clear()

    def add_fact(self, user_id: str, fact: UserFact) -> bool:
        """
        Store a fact if it beats the existing one for the same key.

        Returns:
            True if the fact was stored, False if an equal-or-higher
            confidence fact was already present
        """
        with self._lock:
            facts = self._get_or_create(user_id).facts
            existing = facts.get(fact.key)
            if existing is not None and fact.confidence <= existing.confidence:
                return False
            facts[fact.key] = fact
            return True

    def get_facts(self, user_id: str) -> List[UserFact]:
        """All facts for a user, ordered by key."""
        with self._lock:
            memory = self._users.get(user_id)
            if not memory:
                return []
            return [memory.facts[key] for key in sorted(memory.facts)]

    def get_fact_by_key(self, user_id: str, key: str) -> Optional[UserFact]:
        with self._lock:
            memory = self._users.get(user_id)
            return memory.facts.get(key) if memory else None

    def remove_fact(self, user_id: str, key: str) -> None:
        with self._lock:
            memory = self._users.get(user_id)
            if memory:
                memory.facts.pop(key, None)

    def get_stats(self) -> Dict[str, int]:
        """
        Get manager statistics.

        Returns:
            Dict with user, message and fact counts
        """
        with self._lock:
            return {
                "users": len(self._users),
                "messages": sum(len(m.short_term) for m in self._users.values()),
                "facts": sum(len(m.facts) for m in self._users.values()),
                "short_term_size": self.short_term_size,
            }


# Singleton instance
_memory_manager: Optional[MemoryManager] = None
_manager_lock = threading.Lock()


def get_memory_manager() -> MemoryManager:
    """
    Get or create the global MemoryManager instance.

    Returns:
        The singleton MemoryManager sized from SHORT_TERM_MEMORY_SIZE
    """
    global _memory_manager
    with _manager_lock:
        if _memory_manager is None:
            from nestchat.core.config import get_settings
            _memory_manager = MemoryManager(get_settings().short_term_memory_size)
        return _memory_manager


def reset_memory_manager() -> None:
    """Reset the global MemoryManager (useful for testing)."""
    global _memory_manager
    with _manager_lock:
        _memory_manager = None
