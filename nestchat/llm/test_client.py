from dataclasses import replace
from types import SimpleNamespace

import pytest
from google.generativeai.types.generation_types import BlockedPromptException, StopCandidateException

from nestchat.core.config import get_settings
from nestchat.core.exceptions import LLMError
from nestchat.llm.client import GeminiClient, GroqClient, _split_for_gemini, create_llm_client
from nestchat.llm.types import ChatChunk, ChatMessage, ChatRequest


class FakeStream:
    def __init__(self, chunks):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        return iter(self.chunks)

    def close(self):
        self.closed = True


def _chunk(content, finish_reason=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(delta=SimpleNamespace(content=content), finish_reason=finish_reason)]
    )


def test_groq_stream_maps_chunks_and_closes():
    client = GroqClient(api_key="test-key", model="llama-3.3-70b-versatile")
    stream = FakeStream([_chunk("Hello"), SimpleNamespace(choices=[]), _chunk(None, "stop")])
    calls = []

    def create(**kwargs):
        calls.append(kwargs)
        return stream

    client.client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))

    chunks = list(client.stream_chat_completion(ChatRequest(messages=[ChatMessage("user", "hi")])))

    assert chunks == [ChatChunk(content="Hello"), ChatChunk(content="", finish_reason="stop")]
    assert stream.closed
    assert calls[0]["model"] == "llama-3.3-70b-versatile"
    assert calls[0]["stream"] is True
    assert calls[0]["messages"] == [{"role": "user", "content": "hi"}]


def test_split_for_gemini():
    system, history, last = _split_for_gemini([
        ChatMessage("system", "Be kind."),
        ChatMessage("user", "My feet are swollen"),
        ChatMessage("assistant", "How long has that been going on?"),
        ChatMessage("user", "Since Monday"),
    ])

    assert system == "Be kind."
    assert history == [
        {"role": "user", "parts": ["My feet are swollen"]},
        {"role": "model", "parts": ["How long has that been going on?"]},
    ]
    assert last == "Since Monday"


def test_split_for_gemini_needs_trailing_user_message():
    with pytest.raises(LLMError):
        _split_for_gemini([ChatMessage("system", "Be kind.")])


def test_factory_rejects_missing_key():
    settings = replace(get_settings(), llm_provider="groq", groq_api_key="")
    with pytest.raises(LLMError):
        create_llm_client(settings)


def test_factory_rejects_unknown_provider():
    settings = replace(get_settings(), llm_provider="deepseek")
    with pytest.raises(LLMError):
        create_llm_client(settings)


def test_factory_builds_groq():
    settings = replace(get_settings(), llm_provider="groq", groq_api_key="test-key", llm_model="m")
    client = create_llm_client(settings)
    assert isinstance(client, GroqClient)
    assert client.default_model == "m"


def test_gemini_safety_stop_during_stream_becomes_llm_error(monkeypatch):
    client = GeminiClient(api_key="test-key", model="gemini-2.0-flash")

    def blocked(request, stream):
        raise StopCandidateException("finish_reason: SAFETY")

    monkeypatch.setattr(client, "_send", blocked)

    with pytest.raises(LLMError):
        list(client.stream_chat_completion(ChatRequest(messages=[ChatMessage("user", "I'm bleeding")])))


def test_gemini_blocked_prompt_becomes_llm_error(monkeypatch):
    client = GeminiClient(api_key="test-key", model="gemini-2.0-flash")

    def blocked(request, stream):
        raise BlockedPromptException("prompt_feedback: SAFETY")

    monkeypatch.setattr(client, "_send", blocked)

    with pytest.raises(LLMError):
        client.chat_completion(ChatRequest(messages=[ChatMessage("user", "I'm bleeding")]))
