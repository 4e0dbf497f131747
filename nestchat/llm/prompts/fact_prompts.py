# Fact Extraction Prompts

FACT_EXTRACTION_SYSTEM_PROMPT = """You extract durable facts about a pregnant user from one conversation turn.

Only extract facts the USER states about herself. Ignore anything the assistant says
unless the user confirms it.

Useful keys:
- pregnancy_week: current week of pregnancy as a number (1-42)
- due_date: expected due date or month
- first_pregnancy: "yes" or "no"
- diet: dietary pattern or restriction (vegetarian, gestational diabetes diet, ...)
- allergies: known allergies
- conditions: ongoing medical conditions
- exercise: regular physical activity

Rules:
- Use only the keys above
- confidence is 0.0-1.0; use 0.9 only for explicit statements
- If nothing qualifies, return an empty list

Return ONLY valid JSON of the form:
{"facts": [{"key": "...", "value": "...", "confidence": 0.0}]}"""


def get_fact_extraction_user_prompt(user_message: str, assistant_message: str) -> str:
    """Render one turn for fact extraction."""
    return (
        f"User: {user_message}\n"
        f"Assistant: {assistant_message}\n\n"
        "Extract the facts as JSON."
    )
