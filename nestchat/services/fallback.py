"""
Fallback Replies - Calm, localized texts used when the LLM cannot answer.

Every failure path in the chat engine ends in one of these instead of a
technical error. Symptom reports get a reply that points the user to
professional care.
"""
from dataclasses import dataclass
from typing import Dict

from nestchat.analysis.intent_classifier import Intent


@dataclass(frozen=True)
class FallbackResponse:
    content: str
    action: str  # "retry", "contact_support" or "emergency"


INTENT_FALLBACKS: Dict[str, Dict[Intent, FallbackResponse]] = {
    "en": {
        Intent.SYMPTOM_REPORT: FallbackResponse(
            "I'm having trouble processing your message right now. If you're experiencing "
            "severe symptoms like bleeding, severe pain, or other concerning signs, please "
            "contact your healthcare provider immediately or call emergency services.",
            "emergency",
        ),
        Intent.PREGNANCY_QUESTION: FallbackResponse(
            "I'm having a brief connection issue. Let me try again in a moment. In the "
            "meantime, if your question is urgent, please reach out to your healthcare provider.",
            "retry",
        ),
        Intent.SCHEDULING: FallbackResponse(
            "I'm having trouble right now, but your calendar is still accessible. You can "
            "add reminders manually while I get back online.",
            "retry",
        ),
        Intent.SMALL_TALK: FallbackResponse(
            "I'm here! Having a small technical hiccup. How can I help you today?",
            "retry",
        ),
        Intent.UNCLEAR: FallbackResponse(
            "I'm having trouble understanding right now. Could you try rephrasing your question?",
            "retry",
        ),
    },
    "es": {
        Intent.SYMPTOM_REPORT: FallbackResponse(
            "Estoy teniendo problemas para procesar tu mensaje ahora. Si estás experimentando "
            "síntomas graves como sangrado, dolor severo u otras señales preocupantes, contacta "
            "a tu proveedor de salud inmediatamente o llama a servicios de emergencia.",
            "emergency",
        ),
        Intent.PREGNANCY_QUESTION: FallbackResponse(
            "Tengo un problema de conexión breve. Déjame intentar de nuevo en un momento. "
            "Mientras tanto, si tu pregunta es urgente, comunícate con tu proveedor de salud.",
            "retry",
        ),
        Intent.SCHEDULING: FallbackResponse(
            "Estoy teniendo problemas ahora, pero tu calendario sigue accesible. Puedes "
            "agregar recordatorios manualmente mientras vuelvo en línea.",
            "retry",
        ),
        Intent.SMALL_TALK: FallbackResponse(
            "¡Estoy aquí! Teniendo un pequeño problema técnico. ¿Cómo puedo ayudarte hoy?",
            "retry",
        ),
        Intent.UNCLEAR: FallbackResponse(
            "Estoy teniendo problemas para entender ahora. ¿Podrías reformular tu pregunta?",
            "retry",
        ),
    },
}

DEFAULT_FALLBACKS = {
    "en": FallbackResponse("I'm sorry, I'm having technical difficulties. Please try again.", "retry"),
    "es": FallbackResponse("Lo siento, estoy teniendo problemas técnicos. Por favor intenta de nuevo.", "retry"),
}

TIMEOUT_FALLBACKS = {
    "en": FallbackResponse(
        "I'm taking longer than usual to respond. This might be a temporary issue. If your "
        "question is urgent, please contact your healthcare provider.",
        "retry",
    ),
    "es": FallbackResponse(
        "Estoy tardando más de lo habitual en responder. Esto podría ser un problema temporal. "
        "Si tu pregunta es urgente, contacta a tu proveedor de salud.",
        "retry",
    ),
}

CIRCUIT_OPEN_FALLBACKS = {
    "en": FallbackResponse(
        "I'm temporarily unavailable due to technical difficulties. I'll be back shortly. For "
        "urgent matters, please contact your healthcare provider directly.",
        "contact_support",
    ),
    "es": FallbackResponse(
        "Estoy temporalmente no disponible debido a dificultades técnicas. Volveré pronto. Para "
        "asuntos urgentes, contacta directamente a tu proveedor de salud.",
        "contact_support",
    ),
}

SMALL_TALK_REPLIES = {
    "en": "I'm here with you. How can I help today?",
    "es": "Estoy aquí contigo. ¿Cómo puedo ayudarte hoy?",
}


def get_fallback_response(intent: Intent, language: str) -> FallbackResponse:
    lang = "es" if language == "es" else "en"
    return INTENT_FALLBACKS[lang].get(intent, DEFAULT_FALLBACKS[lang])


def get_timeout_response(language: str) -> FallbackResponse:
    return TIMEOUT_FALLBACKS.get(language, TIMEOUT_FALLBACKS["en"])


def get_circuit_open_response(language: str) -> FallbackResponse:
    return CIRCUIT_OPEN_FALLBACKS.get(language, CIRCUIT_OPEN_FALLBACKS["en"])


def get_small_talk_reply(language: str) -> str:
    return SMALL_TALK_REPLIES.get(language, SMALL_TALK_REPLIES["en"])


def is_emergency_intent(intent: Intent) -> bool:
    return intent == Intent.SYMPTOM_REPORT
