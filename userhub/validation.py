"""Shape checks applied to user input before it reaches the store."""

from __future__ import annotations

import re

NAME_ERROR = "Name is required and must be a non-empty string"
EMAIL_ERROR = "Valid email is required"

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def clean_name(value: object) -> str:
    """Return the stripped name or raise :class:`ValueError`."""

    if not isinstance(value, str):
        raise ValueError(NAME_ERROR)
    stripped = value.strip()
    if not stripped:
        raise ValueError(NAME_ERROR)
    return stripped


def clean_email(value: object) -> str:
    # Emails are stored exactly as given; uniqueness is case-sensitive.
    if not isinstance(value, str) or not _EMAIL_PATTERN.match(value):
        raise ValueError(EMAIL_ERROR)
    return value


__all__ = ["EMAIL_ERROR", "NAME_ERROR", "clean_email", "clean_name"]
