"""In-memory storage for user records."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set

from .models import User, UserUpdate

logger = logging.getLogger("userhub.store")


class UserStoreError(Exception):
    """Base class for failures reported by :class:`UserStore`."""


class UserNotFoundError(UserStoreError):
    """Raised when no live record matches the requested identifier."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User with id {user_id} not found")
        self.user_id = user_id


class EmailConflictError(UserStoreError):
    """Raised when an email address already belongs to another record."""

    def __init__(self, email: str) -> None:
        super().__init__("User with this email already exists")
        self.email = email


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _generate_user_id() -> str:
    return str(uuid.uuid4())


class UserStore:
    """Own the user collection and enforce identity and email uniqueness.

    Records are kept in insertion order keyed by id, alongside an email index
    that is updated under the same lock as the records themselves. Email
    comparison is case-sensitive.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _current_timestamp,
        id_factory: Callable[[], str] = _generate_user_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._users: Dict[str, User] = {}
        self._email_index: Dict[str, str] = {}
        self._issued_ids: Set[str] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._users)

    def count(self) -> int:
        return len(self)

    def list_users(self) -> List[User]:
        with self._lock:
            return list(self._users.values())

    def get_user(self, user_id: str) -> User:
        with self._lock:
            return self._require(user_id)

    def find_by_email(self, email: str) -> Optional[User]:
        with self._lock:
            user_id = self._email_index.get(email)
            if user_id is None:
                return None
            return self._users[user_id]

    def create_user(self, name: str, email: str) -> User:
        """Add a new record and return it.

        ``name`` and ``email`` are expected to be validated by the caller;
        only uniqueness of the email address is checked here.
        """

        with self._lock:
            if email in self._email_index:
                raise EmailConflictError(email)

            user_id = self._new_id()
            now = self._clock()
            user = User(id=user_id, name=name, email=email, created_at=now, updated_at=now)
            self._users[user_id] = user
            self._email_index[email] = user_id

        logger.info("Created user %s", user.id)
        return user

    def update_user(self, user_id: str, changes: UserUpdate) -> User:
        """Merge ``changes`` over an existing record, keeping its position."""

        with self._lock:
            current = self._require(user_id)

            email_changed = changes.email is not None and changes.email != current.email
            if email_changed:
                owner = self._email_index.get(changes.email)
                if owner is not None and owner != user_id:
                    raise EmailConflictError(changes.email)

            updates: Dict[str, object] = {}
            if changes.name is not None:
                updates["name"] = changes.name
            if email_changed:
                updates["email"] = changes.email
            updates["updated_at"] = max(self._clock(), current.updated_at)

            updated = replace(current, **updates)
            # Reassigning an existing key keeps its insertion position.
            self._users[user_id] = updated
            if email_changed:
                del self._email_index[current.email]
                self._email_index[updated.email] = user_id

        logger.info("Updated user %s", user_id)
        return updated

    def delete_user(self, user_id: str) -> None:
        with self._lock:
            user = self._require(user_id)
            del self._users[user_id]
            self._email_index.pop(user.email, None)

        logger.info("Deleted user %s", user_id)

    def clear(self) -> None:
        with self._lock:
            self._users.clear()
            self._email_index.clear()

    def _require(self, user_id: str) -> User:
        user = self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def _new_id(self) -> str:
        user_id = self._id_factory()
        if not user_id or user_id in self._issued_ids:
            raise RuntimeError(f"Identifier factory produced an unusable id: {user_id!r}")
        self._issued_ids.add(user_id)
        return user_id


__all__ = [
    "EmailConflictError",
    "UserNotFoundError",
    "UserStore",
    "UserStoreError",
]
