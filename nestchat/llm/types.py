"""
Provider-neutral chat-completion types.

Every LLM provider adapter maps its SDK objects onto these, so the chat
engine and prompt builder never see a provider-specific type.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class ChatMessage:
    """A role-tagged message: "system", "user" or "assistant"."""
    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatRequest:
    """A chat-completion request."""
    messages: List[ChatMessage]
    model: str = ""  # empty means the client's configured default
    temperature: float = 0.7
    max_tokens: int = 200


@dataclass(frozen=True)
class ChatChunk:
    """One incremental piece of a streamed answer."""
    content: str = ""
    finish_reason: Optional[str] = None


@dataclass
class ChatCompletion:
    """A complete, non-streamed answer."""
    content: str
    model: str = ""
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)
