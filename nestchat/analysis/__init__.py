"""
Analysis Package - Deterministic understanding of user messages.

This package provides:
- IntentClassifier: Rule-based intent detection with confidence scores
- SymptomExtractor: Structured symptom records (severity, frequency, onset)
- CalendarSuggester: Reminder proposals for symptoms and scheduling
- FactExtractor: Long-term user facts from a conversation turn

Everything here except FactExtractor's optional LLM mode is a pure
function of its input and safe to call from any thread.

Example:
    >>> from nestchat.analysis import IntentClassifier, SymptomExtractor
    >>>
    >>> result = IntentClassifier().classify("My feet are swollen", "en")
    >>> result.intent
    <Intent.SYMPTOM_REPORT: 'symptom_report'>
    >>> [s.type for s in SymptomExtractor().extract_symptoms("My feet are swollen")]
    ['swelling']
"""
from nestchat.analysis.intent_classifier import ClassifierResult, Intent, IntentClassifier
from nestchat.analysis.symptom_extractor import (
    ExtractedSymptom,
    SymptomExtractor,
    format_symptom_for_prompt,
)
from nestchat.analysis.calendar_suggester import CalendarSuggester, Suggestion, SuggestionResult
from nestchat.analysis.fact_extractor import ExtractedFact, FactExtractor

__all__ = [
    "ClassifierResult",
    "Intent",
    "IntentClassifier",
    "ExtractedSymptom",
    "SymptomExtractor",
    "format_symptom_for_prompt",
    "CalendarSuggester",
    "Suggestion",
    "SuggestionResult",
    "ExtractedFact",
    "FactExtractor",
]
