"""In-memory user directory with a REST API and a small browser UI."""

from __future__ import annotations

from typing import Any

from .models import User, UserUpdate
from .store import EmailConflictError, UserNotFoundError, UserStore, UserStoreError


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the combined API + UI application."""

    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "EmailConflictError",
    "User",
    "UserNotFoundError",
    "UserStore",
    "UserStoreError",
    "UserUpdate",
    "create_app",
]
