"""
Logging helpers for AuditFlow
Keeps user-supplied text (codes, titles, names) from injecting into log lines
and provides the one-time logging setup used by the CLI.
"""

import logging
import re
from typing import Any, Optional

from ..config import Settings

logger = logging.getLogger(__name__)

# Patterns for detecting potentially malicious content
LOG_INJECTION_PATTERNS = [
    r"[\r\n]",  # CRLF injection
    r"%0[ad]",  # URL-encoded CRLF
    r"\\[rn]",  # Escaped newlines
    r"\x00",  # Null bytes
    r"[\x01-\x08\x0b\x0c\x0e-\x1f\x7f]",  # Control characters
]

# Standard codes look like "A.5.1", "APO01.02" or "AUD-2026-001"
SAFE_LOG_PATTERN = re.compile(r"^[a-zA-Z0-9._@\-\s()/]+$")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def sanitize_for_log(value: Optional[Any], max_length: int = 100, allow_special: bool = False) -> str:
    """
    Sanitize any value for safe logging.

    Args:
        value: Value to sanitize
        max_length: Maximum length of output
        allow_special: Whether to allow some special characters

    Returns:
        str: Sanitized string safe for logging
    """
    if value is None:
        return "null"

    str_value = str(value)

    if len(str_value) > max_length:
        str_value = str_value[:max_length] + "..."

    for pattern in LOG_INJECTION_PATTERNS:
        str_value = re.sub(pattern, "", str_value)

    if not allow_special and not SAFE_LOG_PATTERN.match(str_value):
        str_value = re.sub(r"[^a-zA-Z0-9._@\-\s()/]", "", str_value)

    if not str_value.strip():
        return "[sanitized]"

    return str_value.strip()


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging from application settings.

    Adds a file handler when ``log_file`` is set. Safe to call more than once;
    handlers are only attached by the first call.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(settings.log_level)
        return

    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)

    if settings.log_file:
        file_handler = logging.FileHandler(settings.log_file)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    logger.debug("Logging configured at level %s", settings.log_level)
