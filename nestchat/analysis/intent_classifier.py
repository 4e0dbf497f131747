"""
Intent Classifier - Deterministic, rule-based intent detection.

This module assigns every inbound message an intent before any AI is
involved:
- small_talk:         greetings and goodbyes
- gratitude:          thanks
- symptom_report:     the user describes something she is feeling
- scheduling_related: appointments, reminders, calendar
- pregnancy_question: general pregnancy questions
- unclear:            nothing matched

Rule groups are English and Spanish patterns side by side, so matching
never depends on the language hint. Groups are evaluated in a fixed
priority order: a health signal is never masked by a scheduling word in
the same message.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern

from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)


class Intent(str, Enum):
    """Intent categories."""
    SMALL_TALK = "small_talk"
    GRATITUDE = "gratitude"
    PREGNANCY_QUESTION = "pregnancy_question"
    SYMPTOM_REPORT = "symptom_report"
    SCHEDULING = "scheduling_related"
    UNCLEAR = "unclear"


@dataclass(frozen=True)
class ClassifierResult:
    """Classification outcome; confidence is a heuristic score, not a probability."""
    intent: Intent
    confidence: float


EMPTY_CONFIDENCE = 0.10
UNCLEAR_CONFIDENCE = 0.30
FIXED_CONFIDENCE = 0.90
MAX_CONFIDENCE = 0.95
CONFIDENCE_STEP = 0.05


def _compile(patterns: List[str]) -> List[Pattern]:
    return [re.compile(p) for p in patterns]


class IntentClassifier:
    """
    Classifies user messages by intent.

    Patterns are compiled once at class definition and reused for
    every call; classify() has no side effects.

    Example:
        >>> classifier = IntentClassifier()
        >>> classifier.classify("I have severe pain, can you remind me to call the doctor", "en")
        ClassifierResult(intent=<Intent.SYMPTOM_REPORT: 'symptom_report'>, confidence=0.8)
    """

    GREETING_PATTERNS = _compile([
        r"\b(hi|hello|hey|hola|buenos días|buenas tardes|good morning|good afternoon)\b",
        r"\bhow are you\b",
        r"\bwhat's up\b",
        r"\bhow's it going\b",
    ])
    GOODBYE_PATTERNS = _compile([
        r"\b(bye|goodbye|see you|farewell|adiós|hasta luego|chao)\b",
        r"\btalk to you later\b",
        r"\bcatch you later\b",
    ])
    THANKS_PATTERNS = _compile([
        r"\b(thanks|thank you|thx|gracias|muchas gracias)\b",
        r"\bappreciate it\b",
        r"\bthanks a lot\b",
    ])
    SYMPTOM_PATTERNS = _compile([
        r"\b(pain|hurt|hurting|ache|aching|dolor|duele)\b",
        r"\b(nausea|nauseous|náuseas|sick|vomit|vómito)\b",
        r"\b(headache|migraine|dolor de cabeza|migraña)\b",
        r"\b(swelling|swollen|hinchazón|hinchado)\b",
        r"\b(bleeding|blood|spotting|sangrado|sangre)\b",
        r"\b(cramping|cramps|calambres)\b",
        r"\b(dizzy|dizziness|mareo|mareada)\b",
        r"\b(tired|fatigue|exhausted|cansada|fatiga)\b",
        r"\b(fever|fiebre|temperature|temperatura)\b",
        r"\bi('m| am| have).*\b(experiencing|feeling|having|noticing|noticed)\b",
        r"\bmy.*(hurts|aches|is|are)\b",
        r"\btengo\b",
        r"\bme duele\b",
    ])
    SCHEDULING_PATTERNS = _compile([
        r"\b(appointment|cita|visit|visita|checkup|check-up)\b",
        r"\b(remind|reminder|recordatorio|recordar)\b",
        r"\b(schedule|scheduling|programar|agendar)\b",
        r"\b(calendar|calendario)\b",
        r"\b(when is|cuándo es|what time|qué hora)\b",
        r"\bset.*reminder\b",
        r"\bnext appointment\b",
        r"\bpróxima cita\b",
    ])
    PREGNANCY_PATTERNS = _compile([
        r"\b(baby|bebé|fetus|feto|pregnancy|embarazo|pregnant|embarazada)\b",
        r"\b(kick|kicking|movement|moving|moverse|movimiento)\b",
        r"\b(week|weeks|semana|semanas|trimester|trimestre)\b",
        r"\b(develop|development|desarrollo|growth|crecimiento)\b",
        r"\b(ultrasound|ecografía|sonogram)\b",
        r"\b(diet|food|foods|comida|alimentos|eat|eating|comer)\b",
        r"\b(exercise|ejercicio|workout|activity|actividad)\b",
        r"\b(safe|safety|seguro|seguridad)\b",
        r"\bwhat.*(avoid|should|can|is it)\b",
        r"\bwhen will\b",
        r"\bhow often\b",
        r"\bqué.*(debo|puedo|alimentos)\b",
        r"\bcuándo\b",
    ])

    WHITESPACE_PATTERN = re.compile(r"\s+")
    TRAILING_PUNCTUATION = "!?.,;:"

    def classify(self, text: str, language: Optional[str] = None) -> ClassifierResult:
        """
        Classify a message.

        Args:
            text: Raw user message
            language: Language hint; accepted but never required for matching

        Returns:
            ClassifierResult with intent and confidence
        """
        normalized = self.normalize(text)

        if not normalized:
            return ClassifierResult(Intent.UNCLEAR, EMPTY_CONFIDENCE)

        if self._matches_any(normalized, self.GREETING_PATTERNS):
            return ClassifierResult(Intent.SMALL_TALK, FIXED_CONFIDENCE)

        if self._matches_any(normalized, self.GOODBYE_PATTERNS):
            return ClassifierResult(Intent.SMALL_TALK, FIXED_CONFIDENCE)

        if self._matches_any(normalized, self.THANKS_PATTERNS):
            return ClassifierResult(Intent.GRATITUDE, FIXED_CONFIDENCE)

        # Safety order: symptoms > scheduling > pregnancy questions
        for intent, patterns, base in (
            (Intent.SYMPTOM_REPORT, self.SYMPTOM_PATTERNS, 0.75),
            (Intent.SCHEDULING, self.SCHEDULING_PATTERNS, 0.75),
            (Intent.PREGNANCY_QUESTION, self.PREGNANCY_PATTERNS, 0.70),
        ):
            matches = self._count_matches(normalized, patterns)
            if matches > 0:
                return ClassifierResult(intent, self._score(base, matches))

        return ClassifierResult(Intent.UNCLEAR, UNCLEAR_CONFIDENCE)

    def normalize(self, text: str) -> str:
        """Lowercase, collapse whitespace and strip trailing punctuation."""
        if not text:
            return ""
        normalized = self.WHITESPACE_PATTERN.sub(" ", text.lower().strip())
        return normalized.rstrip(self.TRAILING_PUNCTUATION)

    @staticmethod
    def _score(base: float, matches: int) -> float:
        # Rounded so identical inputs give byte-identical scores
        return round(min(MAX_CONFIDENCE, base + CONFIDENCE_STEP * matches), 2)

    @staticmethod
    def _matches_any(text: str, patterns: List[Pattern]) -> bool:
        return any(p.search(text) for p in patterns)

    @staticmethod
    def _count_matches(text: str, patterns: List[Pattern]) -> int:
        return sum(1 for p in patterns if p.search(text))
