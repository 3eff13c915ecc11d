"""Domain models for the user directory."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class User:
    """Represents a user record held by the store."""

    id: str
    name: str
    email: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class UserUpdate:
    """Fields to merge over an existing user; ``None`` leaves a field untouched."""

    name: Optional[str] = None
    email: Optional[str] = None


__all__ = ["User", "UserUpdate"]
