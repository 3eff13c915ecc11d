from __future__ import annotations

import itertools
import threading
from datetime import datetime, timedelta, timezone

import pytest

from userhub.models import UserUpdate
from userhub.store import EmailConflictError, UserNotFoundError, UserStore


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> UserStore:
    return UserStore(clock=clock)


def test_create_user_returns_record_with_generated_id(store: UserStore) -> None:
    user = store.create_user("John Doe", "john@example.com")

    assert user.name == "John Doe"
    assert user.email == "john@example.com"
    assert user.id
    assert user.created_at == user.updated_at
    assert store.list_users() == [user]


def test_create_user_rejects_duplicate_email(store: UserStore) -> None:
    store.create_user("John Doe", "john@example.com")

    with pytest.raises(EmailConflictError) as excinfo:
        store.create_user("John Doe", "john@example.com")

    assert str(excinfo.value) == "User with this email already exists"
    assert excinfo.value.email == "john@example.com"
    assert store.count() == 1


def test_email_uniqueness_is_case_sensitive(store: UserStore) -> None:
    store.create_user("John", "john@example.com")
    other = store.create_user("Johnny", "John@Example.com")

    assert other.email == "John@Example.com"
    assert len(store) == 2


def test_get_user_on_empty_store_raises_not_found(store: UserStore) -> None:
    with pytest.raises(UserNotFoundError) as excinfo:
        store.get_user("non-existent-id")

    assert excinfo.value.user_id == "non-existent-id"
    assert str(excinfo.value) == "User with id non-existent-id not found"


def test_update_to_existing_email_conflicts_and_leaves_user_unchanged(store: UserStore) -> None:
    first = store.create_user("User 1", "user1@example.com")
    second = store.create_user("User 2", "user2@example.com")

    with pytest.raises(EmailConflictError):
        store.update_user(first.id, UserUpdate(name="Renamed", email=second.email))

    assert store.get_user(first.id) == first
    assert store.find_by_email("user1@example.com") == first


def test_partial_update_changes_only_supplied_fields(store: UserStore, clock: FakeClock) -> None:
    user = store.create_user("John Doe", "john@example.com")
    clock.advance(5)

    updated = store.update_user(user.id, UserUpdate(name="Jane Doe"))

    assert updated.id == user.id
    assert updated.name == "Jane Doe"
    assert updated.email == "john@example.com"
    assert updated.created_at == user.created_at
    assert updated.updated_at > user.updated_at
    assert store.get_user(user.id) == updated


def test_update_with_same_email_is_not_a_conflict(store: UserStore) -> None:
    user = store.create_user("John Doe", "john@example.com")

    updated = store.update_user(user.id, UserUpdate(email="john@example.com"))

    assert updated.email == "john@example.com"


def test_update_email_releases_previous_address(store: UserStore) -> None:
    user = store.create_user("John Doe", "john@example.com")
    store.update_user(user.id, UserUpdate(email="johnny@example.com"))

    assert store.find_by_email("john@example.com") is None
    replacement = store.create_user("Other John", "john@example.com")
    assert replacement.email == "john@example.com"


def test_update_missing_user_raises_not_found(store: UserStore) -> None:
    with pytest.raises(UserNotFoundError):
        store.update_user("missing", UserUpdate(name="Nobody"))


def test_update_preserves_position(store: UserStore) -> None:
    users = [store.create_user(f"User {i}", f"user{i}@example.com") for i in range(3)]

    store.update_user(users[0].id, UserUpdate(name="First"))

    assert [user.id for user in store.list_users()] == [user.id for user in users]
    assert store.list_users()[0].name == "First"


def test_updated_at_never_moves_backwards(store: UserStore, clock: FakeClock) -> None:
    user = store.create_user("John Doe", "john@example.com")
    clock.advance(-60)

    updated = store.update_user(user.id, UserUpdate(name="Jane Doe"))

    assert updated.updated_at == user.updated_at
    assert updated.created_at <= updated.updated_at


def test_delete_then_get_raises_not_found(store: UserStore) -> None:
    user = store.create_user("John Doe", "john@example.com")

    store.delete_user(user.id)

    with pytest.raises(UserNotFoundError):
        store.get_user(user.id)
    assert user not in store.list_users()
    assert store.find_by_email("john@example.com") is None


def test_delete_missing_user_raises_not_found(store: UserStore) -> None:
    with pytest.raises(UserNotFoundError):
        store.delete_user("missing")


def test_delete_keeps_order_of_remaining_users(store: UserStore) -> None:
    users = [store.create_user(f"User {i}", f"user{i}@example.com") for i in range(4)]

    store.delete_user(users[1].id)

    assert store.list_users() == [users[0], users[2], users[3]]


def test_list_users_is_stable_without_mutation(store: UserStore) -> None:
    assert store.list_users() == []
    store.create_user("User 1", "user1@example.com")
    store.create_user("User 2", "user2@example.com")

    assert store.list_users() == store.list_users()


def test_list_users_returns_a_copy(store: UserStore) -> None:
    store.create_user("User 1", "user1@example.com")

    listing = store.list_users()
    listing.clear()

    assert store.count() == 1


def test_clear_empties_store(store: UserStore) -> None:
    store.create_user("User 1", "user1@example.com")
    store.create_user("User 2", "user2@example.com")

    store.clear()

    assert store.list_users() == []
    assert store.create_user("User 1", "user1@example.com").email == "user1@example.com"


def test_identifiers_are_never_reused() -> None:
    ids = iter(["a", "b", "a"])
    store = UserStore(id_factory=lambda: next(ids))

    first = store.create_user("User 1", "user1@example.com")
    store.create_user("User 2", "user2@example.com")
    store.delete_user(first.id)

    with pytest.raises(RuntimeError):
        store.create_user("User 3", "user3@example.com")
    assert store.count() == 1


def test_generated_identifiers_are_distinct(store: UserStore) -> None:
    users = [store.create_user(f"User {i}", f"user{i}@example.com") for i in range(50)]

    assert len({user.id for user in users}) == 50
    assert all(user.id for user in users)


def test_emails_stay_unique_across_mixed_operations(store: UserStore) -> None:
    emails = ["a@example.com", "b@example.com", "c@example.com"]
    created = []
    for index, email in enumerate(itertools.islice(itertools.cycle(emails), 9)):
        try:
            created.append(store.create_user(f"User {index}", email))
        except EmailConflictError:
            pass
    for user, email in zip(created, reversed(emails)):
        try:
            store.update_user(user.id, UserUpdate(email=email))
        except EmailConflictError:
            pass

    live_emails = [user.email for user in store.list_users()]
    assert len(live_emails) == len(set(live_emails)) == 3


def test_concurrent_creates_keep_emails_unique() -> None:
    store = UserStore()
    errors: list[Exception] = []
    barrier = threading.Barrier(8)

    def worker(index: int) -> None:
        barrier.wait()
        try:
            store.create_user(f"Worker {index}", "shared@example.com")
        except EmailConflictError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert store.count() == 1
    assert len(errors) == 7
