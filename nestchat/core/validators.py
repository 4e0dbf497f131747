"""
Input Validators - Sanitization, validation and privacy utilities.

This module provides:
- Message sanitization and validation for the transport layer
- PII detection and redaction before text leaves the process
  (LLM provider calls) or lands in log files
"""
import re
from typing import Optional, Tuple

from nestchat.core.logging_config import get_logger

logger = get_logger(__name__)

MAX_MESSAGE_LENGTH = 2000

# Redaction order matters: card numbers and SSNs contain digit groups
# that the phone pattern would otherwise claim first.
_PII_PATTERNS = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b\d{4}[-\s]\d{4}[-\s]\d{4}[-\s]\d{4}\b"), "[CARD]"),
    (re.compile(r"\b\d{3}-\d{2}-\d{4}\b"), "[SSN]"),
    (
        re.compile(r"(\+\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]\d{4}|\b\d{3}[-.\s]\d{4}\b"),
        "[PHONE]",
    ),
    (re.compile(r"\b(MRN|Medical Record|Patient ID)[-:\s]*[A-Z0-9]{6,}\b"), "[MEDICAL_ID]"),
]


def sanitize_message(message: str, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Sanitize a user message.

    - Removes null bytes
    - Strips leading/trailing whitespace
    - Normalizes whitespace
    - Limits length

    Args:
        message: Raw user message
        max_length: Maximum allowed length

    Returns:
        Sanitized message
    """
    if not message:
        return ""

    cleaned = message.replace("\x00", "")
    cleaned = cleaned.strip()
    cleaned = re.sub(r'\s+', ' ', cleaned)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned


def validate_message(message: str) -> Tuple[bool, str, Optional[str]]:
    """
    Full validation and sanitization of a message.

    Args:
        message: Raw user message

    Returns:
        Tuple of (is_valid, sanitized_message, error_message)
    """
    if not message or not message.strip():
        return False, "", "Message cannot be empty"

    if len(message) > MAX_MESSAGE_LENGTH * 2:
        return False, "", f"Message too long (max {MAX_MESSAGE_LENGTH} characters)"

    sanitized = sanitize_message(message)

    if not sanitized:
        return False, "", "Message cannot be empty after sanitization"

    return True, sanitized, None


def redact_sensitive_data(text: str) -> str:
    """
    Replace personal identifiers with placeholders.

    Emails, card numbers, SSNs, phone numbers and medical record IDs
    become [EMAIL], [CARD], [SSN], [PHONE] and [MEDICAL_ID].
    """
    for pattern, placeholder in _PII_PATTERNS:
        text = pattern.sub(placeholder, text)
    return text


def contains_pii(text: str) -> bool:
    """Check if text contains potential PII."""
    return any(pattern.search(text) for pattern, _ in _PII_PATTERNS)


def sanitize_for_logging(text: str) -> str:
    """Redact and truncate text so it is safe to write to log files."""
    redacted = redact_sensitive_data(text)
    if len(redacted) > 200:
        return redacted[:197] + "..."
    return redacted


def sanitize_for_api(text: str) -> str:
    """
    Remove PII before sending text to an external LLM provider.

    Pregnancy-related numbers (weeks, measurements) are left untouched.
    """
    return redact_sensitive_data(text)
