"""
Centralized logging configuration.

Every module logs through get_logger(__name__); setup_logging wires the
root logger once with a stdout handler and a per-day file under logs/.
Both handlers redact personal identifiers, so an email or phone number
that slips into a log call never reaches disk.
"""
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that report every HTTP round trip
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "groq")

_logging_configured = False


class RedactingFilter(logging.Filter):
    """Replaces PII in the rendered message before any handler formats it."""

    def filter(self, record: logging.LogRecord) -> bool:
        from nestchat.core.validators import redact_sensitive_data

        record.msg = redact_sensitive_data(record.getMessage())
        record.args = None
        return True


def setup_logging(log_level: str = "INFO", log_dir: Optional[Path] = None) -> logging.Logger:
    """
    Configure application-wide logging.

    Safe to call more than once; only the first call installs handlers.

    Args:
        log_level: Console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory for log files, defaults to logs/ in the project root

    Returns:
        The root logger
    """
    global _logging_configured

    root_logger = logging.getLogger()
    if _logging_configured:
        return root_logger

    log_dir = log_dir or Path(__file__).parent.parent.parent / "logs"
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / f"nestchat_{datetime.now():%Y%m%d}.log"

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    redactor = RedactingFilter()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level.upper())

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)

    for handler in (console_handler, file_handler):
        handler.setFormatter(formatter)
        handler.addFilter(redactor)
        root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logging_configured = True
    root_logger.debug(f"Logging configured: level={log_level}, file={log_file}")
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__ to keep the package hierarchy."""
    return logging.getLogger(name)


class LoggerMixin:
    """
    Gives a class a `logger` named after itself.

    Example:
        >>> class GroqClient(LoggerMixin):
        ...     def stream_chat_completion(self, request):
        ...         self.logger.debug("Streaming from Groq")
    """

    @property
    def logger(self) -> logging.Logger:
        return get_logger(self.__class__.__name__)
