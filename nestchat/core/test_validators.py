from nestchat.core.validators import (
    contains_pii,
    redact_sensitive_data,
    sanitize_for_logging,
    sanitize_message,
    validate_message,
)


def test_sanitize_message_collapses_whitespace():
    assert sanitize_message("  I have\x00  a\n\nheadache  ") == "I have a headache"


def test_validate_message_rejects_empty():
    is_valid, sanitized, error = validate_message("   ")
    assert not is_valid
    assert sanitized == ""
    assert error == "Message cannot be empty"


def test_redacts_email_and_phone():
    text = "Call me at 555-123-4567 or mail jane.doe@example.com"
    redacted = redact_sensitive_data(text)
    assert "[PHONE]" in redacted
    assert "[EMAIL]" in redacted
    assert "555" not in redacted


def test_redacts_ssn():
    assert redact_sensitive_data("my ssn is 123-45-6789") == "my ssn is [SSN]"


def test_pregnancy_numbers_are_kept():
    text = "I am 24 weeks pregnant"
    assert not contains_pii(text)
    assert redact_sensitive_data(text) == text


def test_sanitize_for_logging_truncates():
    assert len(sanitize_for_logging("a" * 500)) == 200
