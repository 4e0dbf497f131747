"""
Calendar Suggester - Propose reminders for symptoms and scheduling requests.

Only symptom reports and scheduling requests ever produce a suggestion.
A suggestion is a proposal sent to the client; nothing is written to a
calendar until the user confirms it elsewhere.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from nestchat.analysis.intent_classifier import Intent

URGENT_KEYWORDS = [
    "severe", "bleeding", "emergency", "urgent",
    "intense pain", "can't breathe", "contractions",
]

SUGGESTING_INTENTS = (Intent.SYMPTOM_REPORT, Intent.SCHEDULING)


@dataclass(frozen=True)
class SuggestionResult:
    """Whether to suggest a reminder, and how urgently."""
    should_suggest: bool
    priority: str  # "urgent", "high", "medium", "low" or ""


@dataclass(frozen=True)
class Suggestion:
    """A proposed calendar reminder."""
    type: str
    title: str
    description: str
    suggested_time: datetime

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "title": self.title,
            "description": self.description,
            "suggested_time": self.suggested_time.isoformat(),
        }


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CalendarSuggester:
    """
    Decides on and builds reminder suggestions.

    Example:
        >>> suggester = CalendarSuggester()
        >>> suggester.should_suggest(Intent.SYMPTOM_REPORT, "I have severe cramps")
        SuggestionResult(should_suggest=True, priority='urgent')
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow):
        self._clock = clock

    def should_suggest(self, intent: Intent, message: str) -> SuggestionResult:
        """Determine if a calendar reminder should be suggested."""
        if intent not in SUGGESTING_INTENTS:
            return SuggestionResult(should_suggest=False, priority="")

        lower = (message or "").lower()
        if any(keyword in lower for keyword in URGENT_KEYWORDS):
            return SuggestionResult(should_suggest=True, priority="urgent")

        return SuggestionResult(should_suggest=True, priority="high")

    def build_suggestion(self, intent: Intent, message: str) -> Optional[Suggestion]:
        """
        Build the reminder proposal for an intent.

        Returns:
            A 24-hour symptom follow-up, a 1-hour appointment placeholder,
            or None for intents that never suggest
        """
        now = self._clock()

        if intent == Intent.SYMPTOM_REPORT:
            return Suggestion(
                type="symptom_followup",
                title="Follow up on symptom",
                description="Check if the symptom persists or improves",
                suggested_time=now + timedelta(hours=24),
            )

        if intent == Intent.SCHEDULING:
            return Suggestion(
                type="appointment",
                title="Appointment reminder",
                description=message,
                suggested_time=now + timedelta(hours=1),
            )

        return None
