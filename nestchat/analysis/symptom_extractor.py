"""
Symptom Extractor - Structured symptom records from free text.

For each known symptom category a keyword set is tested against the
message. Every triggered category becomes one ExtractedSymptom whose
associated_symptoms lists the other categories triggered by the same
message.

Severity, frequency and onset are read once per message through keyword
ladders (first match wins) and shared by every extracted record.

Categories are tested in alphabetical order so output is reproducible.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Pattern, Tuple

from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)


# Common pregnancy symptoms, alphabetical by category
SYMPTOM_KEYWORDS: Dict[str, List[str]] = {
    "back_pain": ["back pain", "backache", "back ache", "lower back"],
    "bleeding": ["bleed", "bleeding", "spotting", "blood"],
    "breast_changes": ["breast", "nipple", "tender"],
    "constipation": ["constipated", "constipation"],
    "contractions": ["contraction", "contractions", "tightening"],
    "cramping": ["cramp", "cramping", "cramps"],
    "dizziness": ["dizzy", "lightheaded", "faint"],
    "fatigue": ["tired", "exhausted", "fatigue", "sleepy"],
    "frequent_urination": ["pee", "urinate", "bathroom"],
    "general_pain": ["pain", "ache", "hurt"],
    "headache": ["headache", "head ache", "migraine"],
    "heartburn": ["heartburn", "acid reflux", "indigestion"],
    "insomnia": ["can't sleep", "insomnia", "awake"],
    "mood_changes": ["mood", "emotional", "crying", "anxious", "depressed"],
    "nausea": ["nausea", "nauseous", "morning sickness", "sick", "queasy"],
    "shortness_breath": ["breath", "breathing", "can't breathe"],
    "swelling": ["swollen", "swelling", "puffy", "edema"],
    "vision_changes": ["blurry", "blurred vision", "vision", "can't see", "eyesight"],
    "vomiting": ["vomit", "throw up", "throwing up"],
}

SEVERITY_LADDER: List[Tuple[str, List[str]]] = [
    ("severe", ["severe", "really bad", "terrible", "excruciating", "unbearable", "can't handle"]),
    ("moderate", ["moderate", "bad", "uncomfortable", "bothering"]),
    ("mild", ["mild", "slight", "little", "bit of"]),
]
DEFAULT_SEVERITY = "moderate"

FREQUENCY_LADDER: List[Tuple[str, List[str]]] = [
    ("constant", ["constant", "all the time", "always", "won't stop", "continuous"]),
    ("daily", ["daily", "every day", "everyday"]),
    ("frequent", ["often", "frequently", "multiple times"]),
    ("occasional", ["sometimes", "occasionally", "now and then"]),
    ("once", ["once", "one time", "just happened"]),
]
DEFAULT_FREQUENCY = "occasional"

ONSET_PATTERNS: List[Tuple[str, Pattern]] = [
    ("now", re.compile(r"(right now|just now|currently)")),
    ("today", re.compile(r"(today|this morning|this afternoon|this evening)")),
    ("yesterday", re.compile(r"yesterday")),
    ("days_ago", re.compile(r"(\d+)\s*days?\s*ago")),
    ("weeks_ago", re.compile(r"(\d+)\s*weeks?\s*ago")),
    ("this_week", re.compile(r"this week")),
    ("last_week", re.compile(r"last week")),
    ("recently", re.compile(r"(recently|lately)")),
    ("few_days", re.compile(r"(few days|couple days|several days)")),
]
UNKNOWN_ONSET = "unknown"


@dataclass
class ExtractedSymptom:
    """A symptom read out of one user message."""
    type: str
    description: str
    severity: str
    frequency: str
    onset_time: str
    associated_symptoms: List[str] = field(default_factory=list)


class SymptomExtractor:
    """
    Extracts symptom information from user messages.

    Example:
        >>> extractor = SymptomExtractor()
        >>> [s.type for s in extractor.extract_symptoms("My feet are swollen and I feel dizzy")]
        ['dizziness', 'swelling']
    """

    def extract_symptoms(self, message: str) -> List[ExtractedSymptom]:
        """
        Analyze a message and extract symptom records.

        Args:
            message: Raw user message

        Returns:
            One ExtractedSymptom per triggered category (possibly empty)
        """
        if not message:
            return []

        lower = message.lower()
        detected = [
            symptom_type
            for symptom_type, keywords in SYMPTOM_KEYWORDS.items()
            if any(keyword in lower for keyword in keywords)
        ]
        if not detected:
            return []

        severity = self.extract_severity(lower)
        frequency = self.extract_frequency(lower)
        onset = self.extract_onset_time(lower)

        symptoms = [
            ExtractedSymptom(
                type=symptom_type,
                description=message,
                severity=severity,
                frequency=frequency,
                onset_time=onset,
                associated_symptoms=[other for other in detected if other != symptom_type],
            )
            for symptom_type in detected
        ]
        logger.debug(f"Extracted {len(symptoms)} symptom(s): {detected}")
        return symptoms

    @staticmethod
    def extract_severity(message: str) -> str:
        """Determine severity from a lowercased message."""
        return _first_ladder_match(message, SEVERITY_LADDER, DEFAULT_SEVERITY)

    @staticmethod
    def extract_frequency(message: str) -> str:
        """Determine how often the symptom occurs from a lowercased message."""
        return _first_ladder_match(message, FREQUENCY_LADDER, DEFAULT_FREQUENCY)

    @staticmethod
    def extract_onset_time(message: str) -> str:
        """
        Determine when the symptom started.

        Patterns with a capture group return the matched phrase
        ("2 days ago", "this morning"); plain patterns return their
        canonical label ("yesterday", "last_week").
        """
        for label, pattern in ONSET_PATTERNS:
            match = pattern.search(message)
            if match:
                return match.group(0) if pattern.groups else label
        return UNKNOWN_ONSET


def _first_ladder_match(message: str, ladder: List[Tuple[str, List[str]]], default: str) -> str:
    for value, keywords in ladder:
        if any(keyword in message for keyword in keywords):
            return value
    return default


def format_symptom_for_prompt(symptom: Mapping[str, Any]) -> str:
    """
    Render a stored symptom as one human-readable line.

    Example:
        "headache - started yesterday - severe severity - daily - with vision_changes"
    """
    parts = [symptom.get("symptom_type", "")]

    onset = symptom.get("onset_time") or ""
    if onset and onset != UNKNOWN_ONSET:
        parts.append(f"started {onset}")

    severity = symptom.get("severity") or ""
    if severity:
        parts.append(f"{severity} severity")

    frequency = symptom.get("frequency") or ""
    if frequency and frequency != DEFAULT_FREQUENCY:
        parts.append(frequency)

    associated = symptom.get("associated_symptoms") or []
    if associated:
        parts.append("with " + ", ".join(associated))

    return " - ".join(parts)
