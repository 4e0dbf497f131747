"""
Memory Package - Per-user conversation memory.

## Short-Term Memory
- Bounded window of the most recent messages per user
- Lost on server restart (durable copies live in the database)

## Long-Term Facts
- Confidence-scored key/value beliefs about a user
- Only replaced by a strictly more confident candidate

## Conversation State
- Primary concern, follow-up count and side topics per user

Example:
    >>> from nestchat.memory import get_memory_manager, Message
    >>> manager = get_memory_manager()
    >>> manager.add_message("user-123", Message("user", "I'm 20 weeks pregnant"))
"""
from nestchat.memory.conversation import Message, UserFact
from nestchat.memory.manager import (
    MemoryManager,
    UserMemory,
    get_memory_manager,
    reset_memory_manager,
)
from nestchat.memory.state import ConversationState, ConversationStateManager

__all__ = [
    "Message",
    "UserFact",
    "MemoryManager",
    "UserMemory",
    "ConversationState",
    "ConversationStateManager",
    "get_memory_manager",
    "reset_memory_manager",
]
