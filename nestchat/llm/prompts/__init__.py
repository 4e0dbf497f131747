"""
Prompts module - LLM prompt templates.

Prompts are stored as separate Python files for:
- Version control of prompt changes
- Clear documentation of prompt purpose
- Deterministic assembly (same inputs, same prompt)
"""
from nestchat.llm.prompts.fact_prompts import (
    FACT_EXTRACTION_SYSTEM_PROMPT,
    get_fact_extraction_user_prompt,
)
from nestchat.llm.prompts.super_prompt import (
    PromptBuilder,
    PromptRequest,
    is_likely_small_talk,
)

__all__ = [
    "FACT_EXTRACTION_SYSTEM_PROMPT",
    "get_fact_extraction_user_prompt",
    "PromptBuilder",
    "PromptRequest",
    "is_likely_small_talk",
]
