import logging

from nestchat.core.logging_config import RedactingFilter


def test_redacting_filter_scrubs_formatted_message():
    record = logging.LogRecord(
        "nestchat.test", logging.INFO, __file__, 1, "reach me at %s", ("jane@example.com",), None
    )

    assert RedactingFilter().filter(record)
    assert record.getMessage() == "reach me at [EMAIL]"


def test_redacting_filter_leaves_plain_text():
    record = logging.LogRecord("nestchat.test", logging.INFO, __file__, 1, "week 20 check-in", None, None)
    RedactingFilter().filter(record)
    assert record.getMessage() == "week 20 check-in"
