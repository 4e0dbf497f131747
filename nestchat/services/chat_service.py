"""
Chat Engine - Transport-agnostic orchestration of one conversation turn.

Every inbound message goes through the same steps:
1. Classify the message (rule-based, no AI)
2. Persist it and append it to short-term memory
3. Small talk: send a canned reply and stop
4. Otherwise send a calendar suggestion when one applies
5. Gather facts, history, conversation state and symptom history;
   build the super-prompt
6. Stream the LLM answer through the circuit breaker, pushing chunks
   to the responder as they arrive
7. Persist the answer; extract symptoms and facts; update the
   conversation state
8. Send done

Results go out through a Responder, so the same engine serves REST,
WebSocket or any other transport. LLM failures never reach the user as
errors: each one ends in a localized fallback text. Persistence failures
are logged and reported in ProcessResult.warnings without interrupting
the reply.
"""
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Generator, List, Mapping, Optional, Protocol

from nestchat.analysis.calendar_suggester import CalendarSuggester, Suggestion
from nestchat.analysis.fact_extractor import FactExtractor
from nestchat.analysis.intent_classifier import Intent, IntentClassifier
from nestchat.analysis.symptom_extractor import SymptomExtractor
from nestchat.core.circuit_breaker import CircuitBreaker, get_llm_circuit_breaker
from nestchat.core.config import Settings, get_settings
from nestchat.core.exceptions import (
    AssistantException,
    CircuitOpenError,
    DatabaseError,
    LLMError,
    LLMTimeoutError,
    StreamCancelled,
    TooManyRequestsError,
    TransportError,
)
from nestchat.core.logging_config import get_logger
from nestchat.core.validators import contains_pii, sanitize_for_api, sanitize_for_logging
from nestchat.llm.client import LLMClient, create_llm_client
from nestchat.llm.prompts.super_prompt import PromptBuilder, PromptRequest
from nestchat.llm.types import ChatRequest
from nestchat.memory.conversation import Message, UserFact
from nestchat.memory.manager import MemoryManager, get_memory_manager
from nestchat.memory.state import ConversationStateManager
from nestchat.services import fallback
from nestchat.services.language import LanguageManager

logger = get_logger(__name__)

RECENT_SYMPTOM_LIMIT = 10
SYMPTOM_TRACKING_INTENTS = (Intent.SYMPTOM_REPORT, Intent.PREGNANCY_QUESTION)

# Ordered: the first keyword found names the concern
CONCERN_KEYWORDS = [
    ("swollen", "swollen feet/ankles"),
    ("swell", "swelling"),
    ("nausea", "nausea/morning sickness"),
    ("headache", "headaches"),
    ("back pain", "back pain"),
    ("cramp", "cramping"),
    ("blurry", "vision changes"),
    ("vision", "vision changes"),
    ("dizzy", "dizziness"),
    ("tired", "fatigue"),
    ("insomnia", "sleep issues"),
    ("heartburn", "heartburn"),
    ("vomit", "vomiting"),
    ("constipa", "constipation"),
    ("bleed", "bleeding"),
]
CONCERN_FALLBACK_WORDS = 5


class Responder(Protocol):
    """
    Push-style sink for one turn's events.

    Implementations raise TransportError when the client can no longer
    be reached.
    """

    def send_message(self, text: str) -> None: ...

    def send_calendar_suggestion(self, suggestion: Suggestion) -> None: ...

    def send_error(self, text: str) -> None: ...

    def send_done(self) -> None: ...


class ChatStore(Protocol):
    """The storage operations the engine relies on."""

    def save_message(self, user_id: str, role: str, content: str) -> int: ...

    def get_user_facts(self, user_id: str) -> List[Any]: ...

    def save_or_update_fact(self, user_id: str, key: str, value: str, confidence: float) -> Any: ...

    def save_symptom(
        self, user_id: str, symptom_type: str, description: str, severity: str,
        frequency: str, onset_time: str, associated_symptoms: List[str]
    ) -> int: ...

    def get_recent_symptoms(self, user_id: str, limit: int) -> List[Dict[str, Any]]: ...

    def get_system_setting(self, key: str) -> Optional[str]: ...


class CollectingResponder:
    """Responder that records every event in order (REST replies, tests)."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    def send_message(self, text: str) -> None:
        self.events.append({"type": "message", "content": text})

    def send_calendar_suggestion(self, suggestion: Suggestion) -> None:
        self.events.append({"type": "calendar_suggestion", "suggestion": suggestion.to_dict()})

    def send_error(self, text: str) -> None:
        self.events.append({"type": "error", "content": text})

    def send_done(self) -> None:
        self.events.append({"type": "done"})

    @property
    def text(self) -> str:
        return "".join(e["content"] for e in self.events if e["type"] == "message")


@dataclass
class ProcessResult:
    """What happened during one turn."""
    intent: Intent
    confidence: float
    language: str
    response: str = ""
    suggestion: Optional[Suggestion] = None
    used_fallback: bool = False
    cancelled: bool = False
    warnings: List[str] = field(default_factory=list)


@dataclass
class _UserLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


def extract_primary_concern(message: str) -> str:
    """
    Name the main concern of a message.

    Returns:
        The label of the first known keyword, else the first five words
    """
    lower = message.lower()
    for keyword, concern in CONCERN_KEYWORDS:
        if keyword in lower:
            return concern

    words = message.split()
    if len(words) > CONCERN_FALLBACK_WORDS:
        return " ".join(words[:CONCERN_FALLBACK_WORDS])
    return message


def contains_new_topic(message: str, primary_concern: str) -> bool:
    """True when fewer than half of the concern's words show up in the message."""
    lower = message.lower()
    concern_words = primary_concern.lower().split()
    matches = sum(1 for word in concern_words if len(word) > 3 and word in lower)
    return matches < len(concern_words) // 2


class ChatEngine:
    """
    Orchestrates a conversation turn for any transport.

    Turns from the same user are serialized; different users proceed
    concurrently.

    Example:
        >>> engine = ChatEngine(llm_client=client, store=repository)
        >>> responder = CollectingResponder()
        >>> engine.process_message("user-1", "hello", "en", responder).response
        "I'm here with you. How can I help today?"
    """

    def __init__(
        self,
        llm_client: LLMClient,
        store: ChatStore,
        memory_manager: Optional[MemoryManager] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        settings: Optional[Settings] = None,
        classifier: Optional[IntentClassifier] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        calendar_suggester: Optional[CalendarSuggester] = None,
        language_manager: Optional[LanguageManager] = None,
        state_manager: Optional[ConversationStateManager] = None,
        symptom_extractor: Optional[SymptomExtractor] = None,
        fact_extractor: Optional[FactExtractor] = None,
    ):
        self.settings = settings or get_settings()
        self.llm_client = llm_client
        self.store = store
        self.memory_manager = memory_manager or get_memory_manager()
        self.circuit_breaker = circuit_breaker or get_llm_circuit_breaker()
        self.classifier = classifier or IntentClassifier()
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.calendar_suggester = calendar_suggester or CalendarSuggester()
        self.language_manager = language_manager or LanguageManager()
        self.state_manager = state_manager or ConversationStateManager()
        self.symptom_extractor = symptom_extractor or SymptomExtractor()
        self.fact_extractor = fact_extractor or FactExtractor(
            llm_client=llm_client,
            circuit_breaker=self.circuit_breaker,
            use_llm=self.settings.llm_fact_extraction,
        )

        self._user_locks: Dict[str, _UserLock] = {}
        self._locks_guard = threading.Lock()

        logger.info("ChatEngine initialized")

    @contextmanager
    def _user_turn(self, user_id: str) -> Generator[None, None, None]:
        # An entry lives only while some thread holds or waits for it
        with self._locks_guard:
            entry = self._user_locks.setdefault(user_id, _UserLock())
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._user_locks[user_id]

    def process_message(
        self,
        user_id: str,
        message: str,
        language: str,
        responder: Responder,
        cancel_event: Optional[threading.Event] = None,
    ) -> ProcessResult:
        """
        Process one user message and push the reply to the responder.

        Args:
            user_id: Owner of the conversation
            message: The user's (already validated) text
            language: Requested reply language; unsupported codes become "en"
            responder: Event sink for this turn
            cancel_event: Set by the transport when the client goes away

        Returns:
            ProcessResult describing the turn

        Raises:
            TransportError: The responder failed outside the LLM stream
        """
        with self._user_turn(user_id):
            return self._process(user_id, message, language, responder, cancel_event)

    def _process(
        self,
        user_id: str,
        message: str,
        language: str,
        responder: Responder,
        cancel_event: Optional[threading.Event],
    ) -> ProcessResult:
        lang = self.language_manager.validate(language).code
        logger.info(f"Processing message: user={user_id}, length={len(message)}, language={lang}")

        if contains_pii(message):
            logger.warning(f"Potential PII detected in message from user={user_id}")

        # 1. Classify
        classification = self.classifier.classify(message, lang)
        result = ProcessResult(
            intent=classification.intent,
            confidence=classification.confidence,
            language=lang,
        )
        logger.info(f"Intent classified: {result.intent.value} (confidence: {result.confidence:.2f})")

        # 2. Book-keeping happens before any branching
        self._save_message(user_id, "user", message, result)
        self.memory_manager.add_message(user_id, Message("user", message))

        # 3. Small talk never reaches the LLM
        if result.intent == Intent.SMALL_TALK:
            reply = fallback.get_small_talk_reply(lang)
            responder.send_message(reply)
            self._save_message(user_id, "assistant", reply, result)
            self.memory_manager.add_message(user_id, Message("assistant", reply))
            self.state_manager.reset(user_id)
            result.response = reply
            responder.send_done()
            return result

        # 4. Calendar suggestion
        decision = self.calendar_suggester.should_suggest(result.intent, message)
        if decision.should_suggest:
            suggestion = self.calendar_suggester.build_suggestion(result.intent, message)
            if suggestion is not None:
                result.suggestion = suggestion
                responder.send_calendar_suggestion(suggestion)
                logger.info(f"Calendar suggestion sent: {suggestion.type} (priority={decision.priority})")

        # 5. Context and prompt
        prompt_request = self._build_prompt_request(user_id, message, lang, result)
        messages = self.prompt_builder.build_prompt(prompt_request)
        chat_request = ChatRequest(
            messages=messages,
            temperature=self.settings.llm_temperature,
            max_tokens=self.settings.llm_max_tokens,
        )

        # 6. Stream through the breaker
        partial: List[str] = []
        try:
            self.circuit_breaker.call(
                lambda: self._stream_answer(chat_request, responder, cancel_event, partial)
            )
        except StreamCancelled:
            logger.info(f"Stream cancelled for user={user_id} after {len(partial)} chunk(s)")
            result.cancelled = True
            result.response = "".join(partial)
            if result.response:
                self._save_message(user_id, "assistant", result.response, result)
                self.memory_manager.add_message(user_id, Message("assistant", result.response))
            return result
        except (CircuitOpenError, TooManyRequestsError) as e:
            logger.warning(f"LLM call rejected by circuit breaker: {e}")
            return self._send_fallback(fallback.get_circuit_open_response(lang), responder, result)
        except LLMTimeoutError as e:
            logger.error(f"LLM call timed out: {e}")
            return self._send_fallback(fallback.get_timeout_response(lang), responder, result)
        except AssistantException as e:
            logger.error(f"LLM call failed: {e}")
            return self._send_fallback(fallback.get_fallback_response(result.intent, lang), responder, result)
        except Exception as e:
            # Unwrapped client errors still end in a localized reply
            logger.error(f"Unexpected LLM client error: {e}", exc_info=True)
            return self._send_fallback(fallback.get_fallback_response(result.intent, lang), responder, result)

        answer = "".join(partial)
        result.response = answer
        logger.info(f"AI response received: {len(answer)} chars")

        # 7. Persist and learn from the turn
        self._save_message(user_id, "assistant", answer, result)
        self.memory_manager.add_message(user_id, Message("assistant", answer))

        if result.intent in SYMPTOM_TRACKING_INTENTS:
            self._save_symptoms(user_id, message, result)
        self._save_facts(user_id, message, answer, result)
        self._update_conversation_state(user_id, message)

        # 8. Done
        responder.send_done()
        return result

    def _stream_answer(
        self,
        request: ChatRequest,
        responder: Responder,
        cancel_event: Optional[threading.Event],
        parts: List[str],
    ) -> None:
        """Relay chunks to the responder; runs inside the circuit breaker."""
        stream = self.llm_client.stream_chat_completion(request)
        try:
            for chunk in stream:
                if cancel_event is not None and cancel_event.is_set():
                    raise StreamCancelled()
                if not chunk.content:
                    continue
                parts.append(chunk.content)
                try:
                    responder.send_message(chunk.content)
                except TransportError as e:
                    raise StreamCancelled("Client connection lost") from e
        finally:
            close = getattr(stream, "close", None)
            if close is not None:
                close()

        if not parts:
            raise LLMError("Empty response from LLM")

    def _send_fallback(
        self,
        response: fallback.FallbackResponse,
        responder: Responder,
        result: ProcessResult,
    ) -> ProcessResult:
        responder.send_message(response.content)
        responder.send_done()
        result.response = response.content
        result.used_fallback = True
        return result

    def _build_prompt_request(
        self,
        user_id: str,
        message: str,
        language: str,
        result: ProcessResult,
    ) -> PromptRequest:
        self._load_stored_facts(user_id, result)

        recent_symptoms: List[Mapping[str, Any]] = []
        try:
            recent_symptoms = self.store.get_recent_symptoms(user_id, RECENT_SYMPTOM_LIMIT)
        except DatabaseError as e:
            self._warn(result, f"Could not load symptom history: {e}")

        ai_name = self.settings.assistant_name
        try:
            ai_name = self.store.get_system_setting("ai_name") or ai_name
        except DatabaseError as e:
            self._warn(result, f"Could not load assistant name: {e}")

        # The current message was appended in step 2; it goes last on its own
        history = self.memory_manager.get_short_term_memory(user_id)[:-1]

        return PromptRequest(
            user_message=sanitize_for_api(message),
            language=language,
            short_term_memory=history,
            facts=self.memory_manager.get_facts(user_id),
            recent_symptoms=recent_symptoms,
            conversation_state=self.state_manager.get_state(user_id),
            ai_name=ai_name,
        )

    def _load_stored_facts(self, user_id: str, result: ProcessResult) -> None:
        """Merge durable facts into the memory store (monotonic rule applies)."""
        try:
            stored = self.store.get_user_facts(user_id)
        except DatabaseError as e:
            self._warn(result, f"Could not load user facts: {e}")
            return

        for fact in stored:
            self.memory_manager.add_fact(
                user_id,
                UserFact(fact.key, fact.value, fact.confidence, fact.updated_at),
            )

    def _save_message(self, user_id: str, role: str, content: str, result: ProcessResult) -> None:
        try:
            self.store.save_message(user_id, role, content)
        except DatabaseError as e:
            self._warn(result, f"Failed to save {role} message: {e}")

    def _save_symptoms(self, user_id: str, message: str, result: ProcessResult) -> None:
        symptoms = self.symptom_extractor.extract_symptoms(message)
        for symptom in symptoms:
            try:
                self.store.save_symptom(
                    user_id,
                    symptom.type,
                    symptom.description,
                    symptom.severity,
                    symptom.frequency,
                    symptom.onset_time,
                    symptom.associated_symptoms,
                )
            except DatabaseError as e:
                self._warn(result, f"Failed to save symptom {symptom.type}: {e}")
        if symptoms:
            logger.info(f"Extracted {len(symptoms)} symptom(s) for user={user_id}")

    def _save_facts(self, user_id: str, message: str, answer: str, result: ProcessResult) -> None:
        for fact in self.fact_extractor.extract(message, answer):
            self.memory_manager.add_fact(user_id, UserFact(fact.key, fact.value, fact.confidence))
            try:
                self.store.save_or_update_fact(user_id, fact.key, fact.value, fact.confidence)
            except DatabaseError as e:
                self._warn(result, f"Failed to save fact {fact.key}: {e}")

    def _update_conversation_state(self, user_id: str, message: str) -> None:
        state = self.state_manager.get_state(user_id)

        if not state.primary_concern:
            concern = extract_primary_concern(message)
            self.state_manager.set_primary_concern(user_id, concern)
            logger.info(f"Primary concern for user={user_id}: {sanitize_for_logging(concern)}")
            return

        if contains_new_topic(message, state.primary_concern):
            self.state_manager.add_secondary_topic(user_id, message)
            logger.debug(f"Secondary topic recorded for user={user_id}")
        self.state_manager.increment_follow_up(user_id)

    @staticmethod
    def _warn(result: ProcessResult, warning: str) -> None:
        logger.warning(warning)
        result.warnings.append(warning)


# Singleton instance
_chat_engine: Optional[ChatEngine] = None
_engine_lock = threading.Lock()


def get_chat_engine() -> ChatEngine:
    """
    Get or create the global ChatEngine.

    Raises:
        LLMError: If the configured LLM provider cannot be built
    """
    global _chat_engine
    with _engine_lock:
        if _chat_engine is None:
            from nestchat.database.repository import get_chat_repository
            settings = get_settings()
            _chat_engine = ChatEngine(
                llm_client=create_llm_client(settings),
                store=get_chat_repository(),
                settings=settings,
            )
        return _chat_engine


def reset_chat_engine() -> None:
    """Reset the global ChatEngine (useful for testing)."""
    global _chat_engine
    with _engine_lock:
        _chat_engine = None
