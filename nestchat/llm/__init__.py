"""
LLM module - Language model integration.

This module handles all LLM interactions:
- Provider-neutral request/chunk types
- Streaming and non-streaming calls to Groq or Gemini
- Super-prompt construction
- Wrapping provider failures in LLMError
"""
from nestchat.core.exceptions import LLMError, LLMTimeoutError
from nestchat.llm.client import GeminiClient, GroqClient, LLMClient, create_llm_client
from nestchat.llm.types import ChatChunk, ChatCompletion, ChatMessage, ChatRequest

__all__ = [
    "LLMClient",
    "GroqClient",
    "GeminiClient",
    "create_llm_client",
    "LLMError",
    "LLMTimeoutError",
    "ChatChunk",
    "ChatCompletion",
    "ChatMessage",
    "ChatRequest",
]
