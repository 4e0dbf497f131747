# Super-Prompt Builder
#
# Assembles the ordered message list sent to the LLM. Output depends only
# on the PromptRequest: no clock, no randomness, so identical requests give
# byte-identical prompts.

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from nestchat.analysis.symptom_extractor import format_symptom_for_prompt
from nestchat.llm.types import ChatMessage
from nestchat.memory.conversation import Message, UserFact
from nestchat.memory.state import ConversationState

MAX_SYMPTOMS_IN_PROMPT = 5
FACT_CONFIDENCE_THRESHOLD = 0.6
SMALL_TALK_MAX_LENGTH = 15

DEFAULT_SMALL_TALK_NAME = "your pregnancy support assistant"
DEFAULT_PERSONA_NAME = "a pregnancy support assistant"

SMALL_TALK_MARKERS = [
    "hello", "hi", "hey", "hola",
    "goodbye", "bye", "see you",
    "thanks", "thank you", "gracias",
    "how are you", "what's up",
]

RESPONSE_STYLE = """RESPONSE STYLE:
- Keep responses brief and conversational (2-4 sentences maximum)
- Speak like a caring friend on a phone call, not a medical textbook
- Use simple, everyday language - avoid medical jargon
"""

RULES = """RULES:
1. ONE concern at a time - don't jump between topics
2. After 2 follow-up questions, give advice and conclude
3. If user mentions multiple symptoms, acknowledge but focus on the FIRST/MAIN one
4. Only after resolving primary concern can you address secondary topics
5. End conversations decisively - don't keep asking questions indefinitely
"""

RED_FLAG_INSTRUCTIONS = """IMPORTANT: Check for patterns or worsening symptoms that may require urgent attention.
If you see RED FLAGS (severe/frequent bleeding, severe headaches + vision changes, severe abdominal pain), advise immediate medical care.
"""

CONVERSATION_GUIDELINES = """CONVERSATION GUIDELINES:
1. First response to symptom: Ask clarifying questions (timing, severity, etc.)
2. After getting details: Provide brief, reassuring guidance (2-3 sentences max)
3. For concerns: Gently suggest consulting healthcare provider
4. Be warm and supportive, like talking to a close friend
5. Avoid medical jargon - use simple, everyday language
"""


@dataclass
class PromptRequest:
    """Everything the builder needs for one turn."""
    user_message: str
    language: str = "en"
    is_small_talk: bool = False
    short_term_memory: List[Message] = field(default_factory=list)
    facts: List[UserFact] = field(default_factory=list)
    recent_symptoms: List[Mapping[str, Any]] = field(default_factory=list)
    conversation_state: Optional[ConversationState] = None
    ai_name: str = ""


def is_likely_small_talk(content: str) -> bool:
    """Short message containing a greeting/thanks marker."""
    lower = content.lower()
    if len(lower) >= SMALL_TALK_MAX_LENGTH:
        return False
    return any(marker in lower for marker in SMALL_TALK_MARKERS)


def get_language_directive(language: str) -> str:
    if language == "es":
        return "Respond in Spanish (Español). "
    if language != "en":
        return f"Respond in {language} if possible, otherwise in English. "
    return "Respond in English. "


def get_conversation_flow(state: Optional[ConversationState]) -> str:
    """Flow instructions for the current phase of the conversation."""
    lines = ["CONVERSATION FLOW:"]

    if state is not None and state.primary_concern:
        lines.append(f"PRIMARY CONCERN: {state.primary_concern}")
        lines.append("- This is what the user originally asked about - stay focused on resolving this first")
        if state.secondary_topics:
            lines.append("- User mentioned side topics, but address them BRIEFLY and return to primary concern")
        if state.follow_up_count >= 2:
            lines.append("- You've asked enough follow-ups - now provide final advice on PRIMARY CONCERN and conclude")
        else:
            lines.append("- Ask 1-2 clarifying questions about PRIMARY CONCERN only")
    else:
        lines.append("- Identify the main concern from user's message")
        lines.append("- Ask 1-2 clarifying questions about that ONE topic (timing, severity, etc.)")
        lines.append("- Ignore side mentions until primary concern is addressed")

    return "\n".join(lines) + "\n"


def get_user_context(facts: List[UserFact]) -> str:
    """Pregnancy week always; other facts only when confident enough."""
    if not facts:
        return ""

    lines = ["User Context:"]
    week = next((f.value for f in facts if f.key == "pregnancy_week"), "")
    if week:
        lines.append(f"- Pregnancy Week: {week}")
    for fact in facts:
        if fact.key != "pregnancy_week" and fact.confidence > FACT_CONFIDENCE_THRESHOLD:
            lines.append(f"- {fact.key}: {fact.value}")

    return "\n".join(lines) + "\n\n"


def get_symptom_history(symptoms: List[Mapping[str, Any]]) -> str:
    if not symptoms:
        return ""

    lines = ["RECENT SYMPTOM HISTORY (important for tracking patterns):"]
    for symptom in symptoms[:MAX_SYMPTOMS_IN_PROMPT]:
        status = "resolved" if symptom.get("is_resolved") else "ongoing"
        lines.append(f"- {format_symptom_for_prompt(symptom)} ({status})")

    return "\n".join(lines) + "\n\n" + RED_FLAG_INSTRUCTIONS + "\n"


class PromptBuilder:
    """
    Builds the super-prompt for one turn.

    Small talk gets a two-message prompt with no memory at all; every
    other intent gets the full system prompt, filtered history and the
    current message.

    Example:
        >>> builder = PromptBuilder()
        >>> messages = builder.build_prompt(PromptRequest("hi", is_small_talk=True))
        >>> [m.role for m in messages]
        ['system', 'user']
    """

    def build_prompt(self, request: PromptRequest) -> List[ChatMessage]:
        if request.is_small_talk:
            name = request.ai_name or DEFAULT_SMALL_TALK_NAME
            return [
                ChatMessage("system", f"You are {name}. Keep responses brief and warm."),
                ChatMessage("user", request.user_message),
            ]

        messages = [ChatMessage("system", self.build_system_prompt(request))]

        for message in request.short_term_memory:
            if not is_likely_small_talk(message.content):
                messages.append(ChatMessage(message.role, message.content))

        messages.append(ChatMessage("user", request.user_message))
        return messages

    def build_system_prompt(self, request: PromptRequest) -> str:
        name = request.ai_name or DEFAULT_PERSONA_NAME

        parts = [
            f"You are {name}, a knowledgeable and empathetic assistant. "
            "Your role is to provide accurate, helpful, and supportive information "
            "about pregnancy, symptoms, and related topics. \n\n",
            RESPONSE_STYLE + "\n",
            get_conversation_flow(request.conversation_state) + "\n",
            RULES + "\n",
            get_language_directive(request.language) + "\n\n",
            get_user_context(request.facts),
            get_symptom_history(request.recent_symptoms),
            CONVERSATION_GUIDELINES,
        ]
        return "".join(parts)

