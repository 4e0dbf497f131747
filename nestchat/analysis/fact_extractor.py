"""
Fact Extractor - Long-term facts from a conversation turn.

Rule-based extraction always runs. When enabled, the LLM is additionally
asked (non-streaming) for facts; its output is parsed leniently and a
bad answer simply contributes nothing.
"""
import json
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from nestchat.core.circuit_breaker import CircuitBreaker
from nestchat.core.exceptions import AssistantException
from nestchat.core.logging_config import get_logger
from nestchat.llm.client import LLMClient
from nestchat.llm.prompts.fact_prompts import (
    FACT_EXTRACTION_SYSTEM_PROMPT,
    get_fact_extraction_user_prompt,
)
from nestchat.llm.types import ChatMessage, ChatRequest

logger = get_logger(__name__)

ALLOWED_FACT_KEYS = {
    "pregnancy_week", "due_date", "first_pregnancy", "diet",
    "allergies", "conditions", "exercise",
}

MIN_WEEK = 1
MAX_WEEK = 42

_WEEK_PATTERNS = [
    re.compile(r"\b(\d{1,2})\s*(?:weeks?|wks?)\s*(?:pregnant|along)\b"),
    re.compile(r"\b(\d{1,2})\s*(?:weeks?|wks?)\b.*\bpregnan"),
    re.compile(r"\bpregnan.*\bweek\s*(\d{1,2})\b"),
    re.compile(r"\bweek\s*(\d{1,2})\b.*\bpregnan"),
    re.compile(r"\b(\d{1,2})\s*semanas?\b.*\bembarazada\b"),
    re.compile(r"\bembarazada\b.*\b(\d{1,2})\s*semanas?\b"),
    re.compile(r"\bsemana\s*(\d{1,2})\b.*\bembaraz"),
]
_DUE_PATTERN = re.compile(
    r"\bdue\s+(?:in|on|date is)\s+(january|february|march|april|may|june|july|"
    r"august|september|october|november|december)\b"
)
_FIRST_PREGNANCY_PATTERN = re.compile(r"\b(first pregnancy|first baby|primer embarazo|primer bebé)\b")


@dataclass(frozen=True)
class ExtractedFact:
    """A fact candidate ready for save_or_update_fact."""
    key: str
    value: str
    confidence: float


class FactExtractor:
    """
    Extracts user facts from one user/assistant exchange.

    Example:
        >>> FactExtractor().extract("I'm 14 weeks pregnant")
        [ExtractedFact(key='pregnancy_week', value='14', confidence=0.8)]
    """

    def __init__(
        self,
        llm_client: Optional[LLMClient] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        use_llm: bool = False
    ):
        self.llm_client = llm_client
        self.circuit_breaker = circuit_breaker
        self.use_llm = use_llm and llm_client is not None

    def extract(self, user_message: str, assistant_message: str = "") -> List[ExtractedFact]:
        """
        Extract facts; for duplicate keys the highest-confidence candidate wins.
        """
        facts: Dict[str, ExtractedFact] = {}

        candidates = self.extract_rules(user_message)
        if self.use_llm:
            candidates += self._extract_with_llm(user_message, assistant_message)

        for fact in candidates:
            existing = facts.get(fact.key)
            if existing is None or fact.confidence > existing.confidence:
                facts[fact.key] = fact

        return [facts[key] for key in sorted(facts)]

    def extract_rules(self, user_message: str) -> List[ExtractedFact]:
        """Keyword/regex fact extraction; no I/O."""
        lower = (user_message or "").lower()
        facts: List[ExtractedFact] = []

        week = self._extract_pregnancy_week(lower)
        if week is not None:
            facts.append(ExtractedFact("pregnancy_week", str(week), 0.8))

        due = _DUE_PATTERN.search(lower)
        if due:
            facts.append(ExtractedFact("due_date", due.group(1).capitalize(), 0.7))

        if _FIRST_PREGNANCY_PATTERN.search(lower):
            facts.append(ExtractedFact("first_pregnancy", "yes", 0.7))

        return facts

    @staticmethod
    def _extract_pregnancy_week(lower: str) -> Optional[int]:
        for pattern in _WEEK_PATTERNS:
            match = pattern.search(lower)
            if match:
                week = int(match.group(1))
                if MIN_WEEK <= week <= MAX_WEEK:
                    return week
        return None

    def _extract_with_llm(self, user_message: str, assistant_message: str) -> List[ExtractedFact]:
        request = ChatRequest(
            messages=[
                ChatMessage("system", FACT_EXTRACTION_SYSTEM_PROMPT),
                ChatMessage("user", get_fact_extraction_user_prompt(user_message, assistant_message)),
            ],
            temperature=0.0,
            max_tokens=300,
        )

        try:
            if self.circuit_breaker is not None:
                completion = self.circuit_breaker.call(lambda: self.llm_client.chat_completion(request))
            else:
                completion = self.llm_client.chat_completion(request)
            return parse_fact_json(completion.content)
        except AssistantException as e:
            logger.warning(f"LLM fact extraction skipped: {e}")
        except ValueError as e:
            logger.warning(f"LLM fact extraction returned invalid JSON: {e}")
        return []


def parse_fact_json(raw: str) -> List[ExtractedFact]:
    """
    Parse the LLM's {"facts": [...]} answer.

    Code fences are tolerated; entries with unknown keys, empty values
    or unparseable confidence are dropped.

    Raises:
        ValueError: If the text is not JSON at all
    """
    text = (raw or "").strip()
    if text.startswith("```"):
        text = re.sub(r"^```(?:json)?\s*|\s*```$", "", text)

    data = json.loads(text)
    entries = data.get("facts", []) if isinstance(data, dict) else []
    if not isinstance(entries, list):
        entries = []

    facts: List[ExtractedFact] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        key = str(entry.get("key", "")).strip().lower()
        value = str(entry.get("value", "")).strip()
        if key not in ALLOWED_FACT_KEYS or not value:
            continue
        try:
            confidence = float(entry.get("confidence", 0.5))
        except (TypeError, ValueError):
            continue
        facts.append(ExtractedFact(key, value, min(1.0, max(0.0, confidence))))
    return facts
