"""
LLM Clients - Chat-completion providers behind one contract.

The chat engine depends only on LLMClient:
- stream_chat_completion: yields ChatChunk objects as they arrive
- chat_completion: returns one ChatCompletion (used for fact extraction)

Provider variants (Groq, Google Gemini) are chosen once at construction
by create_llm_client(). Every provider error is wrapped in LLMError (or
LLMTimeoutError) so callers never handle SDK exception types.

Streams are plain generators: a consumer that stops early should call
close() on the iterator, which releases the underlying HTTP response.
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterator, List, Optional

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from google.generativeai.types.generation_types import (
    BlockedPromptException,
    IncompleteIterationError,
    StopCandidateException,
)
from groq import APIError, APITimeoutError, Groq

from nestchat.core.config import Settings, get_settings
from nestchat.core.exceptions import LLMError, LLMTimeoutError
from nestchat.core.logging_config import LoggerMixin, get_logger
from nestchat.llm.types import ChatChunk, ChatCompletion, ChatMessage, ChatRequest

logger = get_logger(__name__)

# Raised by google-generativeai outside the GoogleAPIError tree:
# ValueError for chunk.text on a blocked candidate, the rest for safety stops
GEMINI_RESPONSE_ERRORS = (
    google_exceptions.GoogleAPIError,
    BlockedPromptException,
    StopCandidateException,
    IncompleteIterationError,
    ValueError,
)


class LLMClient(ABC, LoggerMixin):
    """Abstract streaming/non-streaming chat-completion capability."""

    default_model: str = ""

    @abstractmethod
    def stream_chat_completion(self, request: ChatRequest) -> Iterator[ChatChunk]:
        """Stream a completion; the iterator ends when the provider is done."""

    @abstractmethod
    def chat_completion(self, request: ChatRequest) -> ChatCompletion:
        """Return a complete, non-streamed answer."""

    def _model_for(self, request: ChatRequest) -> str:
        return request.model or self.default_model


class GroqClient(LLMClient):
    """
    Client for the Groq API (LLaMA models).

    Example:
        >>> client = GroqClient(api_key="gsk_...", model="llama-3.3-70b-versatile")
        >>> for chunk in client.stream_chat_completion(request):
        ...     print(chunk.content, end="")
    """

    def __init__(self, api_key: str, model: str, timeout_seconds: float = 30):
        if not api_key:
            raise LLMError("GROQ_API_KEY is not configured")

        self.client = Groq(api_key=api_key, timeout=timeout_seconds)
        self.default_model = model
        self.timeout_seconds = timeout_seconds
        self.logger.info(f"Groq client initialized (model={model})")

    def stream_chat_completion(self, request: ChatRequest) -> Iterator[ChatChunk]:
        try:
            stream = self.client.chat.completions.create(
                model=self._model_for(request),
                messages=[m.to_dict() for m in request.messages],
                temperature=request.temperature,
                max_tokens=request.max_tokens,
                stream=True,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(self.timeout_seconds) from e
        except APIError as e:
            raise LLMError(f"Groq request failed: {e}") from e

        try:
            for chunk in stream:
                if not chunk.choices:
                    continue
                choice = chunk.choices[0]
                yield ChatChunk(
                    content=choice.delta.content or "",
                    finish_reason=choice.finish_reason,
                )
        except APITimeoutError as e:
            raise LLMTimeoutError(self.timeout_seconds) from e
        except APIError as e:
            raise LLMError(f"Groq stream failed: {e}") from e
        finally:
            stream.close()

    def chat_completion(self, request: ChatRequest) -> ChatCompletion:
        try:
            response = self.client.chat.completions.create(
                model=self._model_for(request),
                messages=[m.to_dict() for m in request.messages],
                temperature=request.temperature,
                max_tokens=request.max_tokens,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(self.timeout_seconds) from e
        except APIError as e:
            raise LLMError(f"Groq request failed: {e}") from e

        if not response.choices:
            raise LLMError("No response from Groq")

        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        choice = response.choices[0]
        return ChatCompletion(
            content=choice.message.content or "",
            model=response.model,
            finish_reason=choice.finish_reason,
            usage=usage,
        )


class GeminiClient(LLMClient):
    """
    Client for Google Gemini via google-generativeai.

    The system message becomes the model's system_instruction and the
    remaining messages become chat history (assistant -> "model").
    """

    def __init__(self, api_key: str, model: str, timeout_seconds: float = 30):
        if not api_key:
            raise LLMError("GOOGLE_API_KEY is not configured")

        genai.configure(api_key=api_key)
        self.default_model = model
        self.timeout_seconds = timeout_seconds
        self.logger.info(f"Gemini client initialized (model={model})")

    def stream_chat_completion(self, request: ChatRequest) -> Iterator[ChatChunk]:
        try:
            response = self._send(request, stream=True)
            for chunk in response:
                yield ChatChunk(content=chunk.text or "")
            yield ChatChunk(finish_reason="stop")
        except google_exceptions.DeadlineExceeded as e:
            raise LLMTimeoutError(self.timeout_seconds) from e
        except GEMINI_RESPONSE_ERRORS as e:
            raise LLMError(f"Gemini stream failed: {e}") from e

    def chat_completion(self, request: ChatRequest) -> ChatCompletion:
        try:
            response = self._send(request, stream=False)
            content = response.text
        except google_exceptions.DeadlineExceeded as e:
            raise LLMTimeoutError(self.timeout_seconds) from e
        except GEMINI_RESPONSE_ERRORS as e:
            raise LLMError(f"Gemini request failed: {e}") from e

        return ChatCompletion(content=content or "", model=self._model_for(request), finish_reason="stop")

    def _send(self, request: ChatRequest, stream: bool):
        system_prompt, history, user_message = _split_for_gemini(request.messages)

        model = genai.GenerativeModel(
            model_name=self._model_for(request),
            system_instruction=system_prompt,
        )
        chat = model.start_chat(history=history)
        return chat.send_message(
            user_message,
            generation_config=genai.types.GenerationConfig(
                temperature=request.temperature,
                max_output_tokens=request.max_tokens,
            ),
            stream=stream,
            request_options={"timeout": self.timeout_seconds},
        )


def _split_for_gemini(messages: List[ChatMessage]):
    """Split OpenAI-style messages into (system_instruction, history, last user text)."""
    system_parts = [m.content for m in messages if m.role == "system"]
    conversation = [m for m in messages if m.role != "system"]

    if not conversation or conversation[-1].role != "user":
        raise LLMError("Gemini requests must end with a user message")

    history: List[Dict[str, object]] = [
        {"role": "user" if m.role == "user" else "model", "parts": [m.content]}
        for m in conversation[:-1]
    ]
    system_prompt: Optional[str] = "\n\n".join(system_parts) if system_parts else None
    return system_prompt, history, conversation[-1].content


def create_llm_client(settings: Optional[Settings] = None) -> LLMClient:
    """
    Build the configured provider.

    Raises:
        LLMError: Unknown provider or missing API key
    """
    settings = settings or get_settings()
    provider = settings.llm_provider.lower()

    if provider == "groq":
        return GroqClient(settings.groq_api_key, settings.llm_model, settings.llm_timeout_seconds)
    if provider == "gemini":
        return GeminiClient(settings.google_api_key, settings.llm_model, settings.llm_timeout_seconds)

    raise LLMError(f"Unknown LLM provider: {settings.llm_provider}")
