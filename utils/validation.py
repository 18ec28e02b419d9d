"""
Input validation utilities for booking API inputs.
"""

import re
from typing import Any, Optional

from utils.datetime_utils import parse_date

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: Any) -> str:
    """Trim and lowercase an email address; None becomes ""."""
    if email is None:
        return ""
    return str(email).strip().lower()


def validate_email(email: Any) -> bool:
    """
    Validate email address format.

    Args:
        email: Email address (normalized before matching)

    Returns:
        True if valid format, False otherwise
    """
    return bool(_EMAIL_RE.match(normalize_email(email)))


def validate_date_string(value: Any) -> bool:
    """
    Validate a "YYYY-MM-DD" calendar date.

    Both the shape and the calendar must be valid ("2026-02-30" is rejected).
    """
    if not isinstance(value, str) or not _DATE_RE.match(value):
        return False
    return parse_date(value) is not None


def validate_time_string(value: Any) -> bool:
    """Validate a zero-padded 24h "HH:mm" time."""
    if not isinstance(value, str) or not _TIME_RE.match(value):
        return False
    hours, minutes = int(value[:2]), int(value[3:])
    return hours <= 23 and minutes <= 59


def sanitize_text(text: Optional[str], max_length: Optional[int] = None) -> str:
    """
    Sanitize free-text input such as service names and notes.

    Args:
        text: Input text
        max_length: Optional maximum length

    Returns:
        Sanitized text
    """
    if not text:
        return ""

    # Remove control characters except newlines and tabs
    sanitized = re.sub(r"[\x00-\x08\x0B-\x0C\x0E-\x1F\x7F]", "", str(text))
    sanitized = sanitized.strip()

    if max_length and len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized
