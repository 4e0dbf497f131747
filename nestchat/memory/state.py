"""
Conversation State - Track the topic the assistant is steering toward.

Per user the tracker moves between two phases:
- no concern: nothing tracked yet (or reset after resolution/small talk)
- tracking:   a primary concern is set; follow-ups are counted and side
              topics recorded

should_refocus() tells the prompt builder to pull the dialogue back to
the primary concern once enough follow-ups have gone by with side
topics in the mix.
"""
import copy
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)

REFOCUS_FOLLOW_UPS = 2


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConversationState:
    """Snapshot of one user's conversation focus."""
    user_id: str
    primary_concern: str = ""
    follow_up_count: int = 0
    last_topic_change: Optional[datetime] = None
    secondary_topics: List[str] = field(default_factory=list)

    @property
    def has_concern(self) -> bool:
        return bool(self.primary_concern)


class ConversationStateManager:
    """
    Thread-safe map of user_id -> ConversationState.

    States are created lazily; get_state() returns a copy so callers can
    read it without holding the lock.

    Example:
        >>> states = ConversationStateManager()
        >>> states.set_primary_concern("u1", "headaches")
        >>> states.get_state("u1").primary_concern
        'headaches'
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._states: Dict[str, ConversationState] = {}
        self._lock = threading.RLock()
        self._clock = clock

    def _get_or_create(self, user_id: str) -> ConversationState:
        state = self._states.get(user_id)
        if state is None:
            state = ConversationState(user_id=user_id, last_topic_change=self._clock())
            self._states[user_id] = state
        return state

    def get_state(self, user_id: str) -> ConversationState:
        with self._lock:
            return copy.deepcopy(self._get_or_create(user_id))

    def set_primary_concern(self, user_id: str, concern: str) -> None:
        """Start tracking a concern; the follow-up counter restarts at zero."""
        with self._lock:
            state = self._get_or_create(user_id)
            state.primary_concern = concern
            state.follow_up_count = 0
            state.last_topic_change = self._clock()

    def increment_follow_up(self, user_id: str) -> None:
        with self._lock:
            state = self._states.get(user_id)
            if state is not None:
                state.follow_up_count += 1

    def add_secondary_topic(self, user_id: str, topic: str) -> None:
        with self._lock:
            state = self._states.get(user_id)
            if state is not None:
                state.secondary_topics.append(topic)

    def should_refocus(self, user_id: str) -> bool:
        with self._lock:
            state = self._states.get(user_id)
            if state is None or not state.primary_concern:
                return False
            return state.follow_up_count >= REFOCUS_FOLLOW_UPS and len(state.secondary_topics) > 0

    def reset(self, user_id: str) -> None:
        """Forget the user's state (back to no concern)."""
        with self._lock:
            if self._states.pop(user_id, None) is not None:
                logger.debug(f"Conversation state reset for user {user_id}")
