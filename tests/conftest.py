"""
Shared fixtures for the BabelChat test suite.

Everything runs against an in-memory store with a deterministic clock so
message ids, timestamps and ordering are reproducible.
"""

from __future__ import annotations

import pytest

from babelchat.errors import StorageError
from babelchat.manager import ConversationManager
from babelchat.models import Group, GroupMember, User
from babelchat.repository import ChatRepository
from babelchat.store import MemoryStore

START_MS = 1_700_000_000_000


class Clock:
    """Millisecond clock that advances one second per call."""

    def __init__(self, start: int = START_MS, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now


class FlakyStore(MemoryStore):
    """MemoryStore that fails on chosen keys."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_get: set[str] = set()
        self.fail_set: set[str] = set()
        self.fail_remove: set[str] = set()
        self.set_calls: list[str] = []

    def get(self, key):
        if key in self.fail_get:
            raise StorageError(f"injected read failure on {key}", key=key)
        return super().get(key)

    def set(self, key, value):
        if key in self.fail_set:
            raise StorageError(f"injected write failure on {key}", key=key)
        self.set_calls.append(key)
        super().set(key, value)

    def remove(self, key):
        if key in self.fail_remove:
            raise StorageError(f"injected remove failure on {key}", key=key)
        super().remove(key)


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def users():
    return {
        "alice": User(id="user_alice", username="alice", display_name="Alice", preferred_language="en"),
        "bruno": User(id="user_bruno", username="bruno", display_name="Bruno", preferred_language="es"),
        "chen": User(id="user_chen", username="chen", display_name="Chen", preferred_language="zh"),
        "dana": User(id="user_dana", username="dana", display_name="Dana", preferred_language="fr"),
        "erin": User(id="user_erin", username="erin", display_name="Erin", preferred_language="en"),
    }


@pytest.fixture
def team(users):
    members = [
        GroupMember(users["alice"].id, "en", START_MS, role="admin"),
        GroupMember(users["bruno"].id, "es", START_MS),
        GroupMember(users["chen"].id, "zh", START_MS),
        GroupMember(users["dana"].id, "fr", START_MS),
        GroupMember(users["erin"].id, "en", START_MS),
    ]
    return Group(
        id="group_team",
        name="Team",
        members=members,
        admins=[users["alice"].id],
        created_by=users["alice"].id,
        created_at=START_MS,
    )


@pytest.fixture
def repo(store, clock, users, team):
    repository = ChatRepository(store, clock=clock)
    repository.save_users(list(users.values()))
    repository.save_groups([team])
    return repository


@pytest.fixture
def make_manager(repo, users, clock):
    def factory(name: str = "alice", **kwargs) -> ConversationManager:
        return ConversationManager(repo, users[name], clock=clock, **kwargs)
    return factory


@pytest.fixture
def manager(make_manager):
    return make_manager("alice")
