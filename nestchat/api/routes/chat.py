"""
Chat Routes - REST and WebSocket endpoints for conversational turns.

Both transports hand the validated message to the same ChatEngine;
they differ only in the responder:
- POST /chat collects every event and returns them in one response
- WS /chat/ws pushes each event to the socket as soon as it happens
"""
import asyncio
import threading
from typing import Any, Dict, Optional

import anyio.from_thread
from fastapi import APIRouter, Depends, Query, Request, Response, WebSocket, WebSocketDisconnect
from pydantic import ValidationError as PydanticValidationError
from starlette.concurrency import run_in_threadpool

from nestchat.analysis.calendar_suggester import Suggestion
from nestchat.core.config import get_settings
from nestchat.core.exceptions import RateLimitExceeded, TransportError, ValidationError
from nestchat.core.logging_config import get_logger
from nestchat.core.rate_limiter import (
    RateLimiter,
    WebSocketLimiter,
    get_ip_rate_limiter,
    get_user_rate_limiter,
)
from nestchat.core.validators import validate_message
from nestchat.models.chat import ChatEvent, ChatRequest, ChatResponse, ErrorResponse, WebSocketMessage
from nestchat.services.chat_service import ChatEngine, CollectingResponder, get_chat_engine

logger = get_logger(__name__)

SLOW_DOWN_MESSAGE = "You're sending messages too quickly. Please slow down and try again in a moment."
INVALID_FRAME_MESSAGE = 'Invalid message. Send JSON like {"message": "...", "language": "en"}.'

router = APIRouter(
    prefix="/chat",
    tags=["Chat"],
    responses={
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        503: {"model": ErrorResponse, "description": "LLM provider or database unavailable"},
    }
)


def get_websocket_limiter() -> WebSocketLimiter:
    """A fresh message limiter for each WebSocket connection."""
    return WebSocketLimiter(get_settings().ws_messages_per_minute)


def _enforce_limit(limiter: RateLimiter, identifier: str, response: Response) -> None:
    is_allowed, remaining = limiter.is_allowed(identifier)
    response.headers["X-RateLimit-Remaining"] = str(remaining)
    if not is_allowed:
        raise RateLimitExceeded(retry_after=limiter.get_retry_after(identifier))


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a message to the assistant",
    description="""
    Process one conversational turn and return every event it produced.

    **Rate Limiting:**
    Requests are limited per client IP and per user (token buckets).
    A 429 response carries a Retry-After header.

    **Events:**
    - `calendar_suggestion`: sent before the answer when the message asks
      for a reminder or reports a severe symptom
    - `message`: answer text (streamed pieces, or one canned/fallback reply)
    - `done`: the turn finished
    """
)
def send_message(
    request: ChatRequest,
    http_request: Request,
    response: Response,
    engine: ChatEngine = Depends(get_chat_engine),
    ip_limiter: RateLimiter = Depends(get_ip_rate_limiter),
    user_limiter: RateLimiter = Depends(get_user_rate_limiter),
) -> ChatResponse:
    client_ip = http_request.client.host if http_request.client else "unknown"
    _enforce_limit(ip_limiter, client_ip, response)
    _enforce_limit(user_limiter, request.user_id, response)

    is_valid, sanitized_message, error = validate_message(request.message)
    if not is_valid:
        raise ValidationError(error, field="message")

    responder = CollectingResponder()
    result = engine.process_message(request.user_id, sanitized_message, request.language, responder)

    return ChatResponse(
        user_id=request.user_id,
        message=responder.text,
        events=[ChatEvent(**event) for event in responder.events],
        intent=result.intent.value,
        confidence=result.confidence,
        language=result.language,
        used_fallback=result.used_fallback,
    )


class WebSocketResponder:
    """
    Responder that pushes each event to a WebSocket.

    The engine runs in a worker thread, so every send hops back onto
    the event loop with anyio.from_thread.run. A failed send raises
    TransportError, which the engine treats as the client going away.
    """

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    def _send(self, event: Dict[str, Any]) -> None:
        try:
            anyio.from_thread.run(self.websocket.send_json, event)
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            raise TransportError(f"WebSocket send failed: {e}") from e

    def send_message(self, text: str) -> None:
        self._send({"type": "message", "content": text})

    def send_calendar_suggestion(self, suggestion: Suggestion) -> None:
        self._send({"type": "calendar_suggestion", "suggestion": suggestion.to_dict()})

    def send_error(self, text: str) -> None:
        self._send({"type": "error", "content": text})

    def send_done(self) -> None:
        self._send({"type": "done"})


async def _read_frames(
    websocket: WebSocket,
    inbox: "asyncio.Queue[Optional[str]]",
    disconnected: threading.Event,
) -> None:
    # Runs alongside the turn so a disconnect is noticed mid-answer
    try:
        while True:
            inbox.put_nowait(await websocket.receive_text())
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.set()
        inbox.put_nowait(None)


@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    user_id: str = Query(..., min_length=1, max_length=64),
    engine: ChatEngine = Depends(get_chat_engine),
    limiter: WebSocketLimiter = Depends(get_websocket_limiter),
) -> None:
    """
    Streaming chat over a WebSocket.

    Inbound frames are JSON objects {"message": ..., "language": ...}.
    Turns run one at a time per connection; frames that arrive while a
    turn is in flight wait in order.
    """
    await websocket.accept()
    logger.info(f"WebSocket connected: user={user_id[:8]}...")

    inbox: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
    disconnected = threading.Event()
    reader = asyncio.create_task(_read_frames(websocket, inbox, disconnected))

    try:
        while True:
            frame = await inbox.get()
            if frame is None:
                break
            await _handle_frame(websocket, frame, user_id, engine, limiter, disconnected)
    except WebSocketDisconnect:
        pass
    finally:
        disconnected.set()
        reader.cancel()
        logger.info(f"WebSocket closed: user={user_id[:8]}...")


async def _handle_frame(
    websocket: WebSocket,
    frame: str,
    user_id: str,
    engine: ChatEngine,
    limiter: WebSocketLimiter,
    disconnected: threading.Event,
) -> None:
    if not limiter.allow():
        await websocket.send_json({"type": "error", "content": SLOW_DOWN_MESSAGE})
        return

    try:
        payload = WebSocketMessage.model_validate_json(frame)
    except PydanticValidationError:
        await websocket.send_json({"type": "error", "content": INVALID_FRAME_MESSAGE})
        return

    is_valid, sanitized_message, error = validate_message(payload.message)
    if not is_valid:
        await websocket.send_json({"type": "error", "content": error})
        return

    try:
        await run_in_threadpool(
            engine.process_message,
            user_id,
            sanitized_message,
            payload.language,
            WebSocketResponder(websocket),
            disconnected,
        )
    except TransportError as e:
        logger.info(f"Client went away mid-turn: {e}")
        disconnected.set()
