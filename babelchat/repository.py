"""
Typed access to the collections kept in the document store.

``ChatRepository`` is the only component that knows how records are laid out
under storage keys. Every method returns a ``Result``: a storage miss is a
successful empty/default value, an I/O or decoding failure is a ``Result``
carrying ``StorageError`` (already logged here).

Multi-key updates go through ``transaction()``, which hands the encoded
documents to the owner's ``Journal``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional, TypeVar

from babelchat.errors import StorageError
from babelchat.journal import Journal
from babelchat.models import (
    AppSettings,
    BlockedUser,
    Conversation,
    Group,
    Message,
    StarredMessage,
    User,
)
from babelchat.results import Result
from babelchat.store import keys
from babelchat.store.base import DocumentStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Reactions = dict[str, dict[str, int]]
Write = tuple[str, Optional[Any]]


class ChatRepository:
    """Collections over a ``DocumentStore``.

    Usage:
        repo = ChatRepository(MemoryStore())
        repo.save_users([alice, bob])
        convs = repo.conversations(alice.id).value
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], int] | None = None):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    def _read(self, key: str, decode: Callable[[Any], T], default: Callable[[], T]) -> Result[T]:
        try:
            raw = self.store.get(key)
        except StorageError as e:
            logger.warning(f"Read of {key} failed: {e}")
            return Result.failure(e)
        if raw is None:
            return Result.success(default())
        try:
            return Result.success(decode(raw))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            error = StorageError(f"Malformed document under {key}: {e}", key=key)
            logger.warning(str(error))
            return Result.failure(error)

    def _write(self, key: str, value: Optional[Any]) -> Result[None]:
        try:
            if value is None:
                self.store.remove(key)
            else:
                self.store.set(key, value)
        except StorageError as e:
            logger.error(f"Write of {key} failed: {e}")
            return Result.failure(e)
        return Result.success()

    def journal(self, owner_id: str) -> Journal:
        return Journal(self.store, owner_id, clock=self.clock)

    def transaction(self, owner_id: str, writes: list[Write], label: str = "") -> Result[None]:
        """Apply several key writes all-or-nothing."""
        try:
            self.journal(owner_id).run(writes, label=label)
        except StorageError as e:
            logger.error(f"Transaction {label} for {owner_id} failed: {e}")
            return Result.failure(e)
        return Result.success()

    def reconcile(self, owner_id: str) -> Result[int]:
        try:
            return Result.success(self.journal(owner_id).reconcile())
        except StorageError as e:
            logger.error(f"Reconcile for {owner_id} failed: {e}")
            return Result.failure(e, value=0)

    # ------------------------------------------------------------------
    # Encoders used to build transaction writes
    # ------------------------------------------------------------------

    @staticmethod
    def messages_write(chat_id: str, messages: list[Message]) -> Write:
        return keys.messages_key(chat_id), [m.to_dict() for m in messages]

    @staticmethod
    def conversations_write(user_id: str, conversations: list[Conversation]) -> Write:
        return keys.conversations_key(user_id), [c.to_dict() for c in conversations]

    @staticmethod
    def reactions_write(chat_id: str, reactions: Reactions) -> Write:
        return keys.reactions_key(chat_id), reactions or None

    @staticmethod
    def users_write(users: list[User]) -> Write:
        return keys.USERS, [u.to_dict() for u in users]

    @staticmethod
    def blocked_write(user_id: str, blocked: list[BlockedUser]) -> Write:
        return keys.blocked_key(user_id), [b.to_dict() for b in blocked]

    @staticmethod
    def session_user_write(user: User) -> Write:
        return keys.SESSION_USER, user.to_dict(include_credentials=False)

    # ------------------------------------------------------------------
    # Users and groups
    # ------------------------------------------------------------------

    def users(self) -> Result[list[User]]:
        return self._read(keys.USERS, lambda raw: [User.from_dict(d) for d in raw], list)

    def save_users(self, users: list[User]) -> Result[None]:
        return self._write(*self.users_write(users))

    def find_user(self, user_id: str) -> Result[Optional[User]]:
        result = self.users()
        if not result.ok:
            return Result.failure(result.error)
        return Result.success(next((u for u in result.value if u.id == user_id), None))

    def groups(self) -> Result[list[Group]]:
        return self._read(keys.GROUPS, lambda raw: [Group.from_dict(d) for d in raw], list)

    def save_groups(self, groups: list[Group]) -> Result[None]:
        return self._write(keys.GROUPS, [g.to_dict() for g in groups])

    def find_group(self, group_id: str) -> Result[Optional[Group]]:
        result = self.groups()
        if not result.ok:
            return Result.failure(result.error)
        return Result.success(next((g for g in result.value if g.id == group_id), None))

    # ------------------------------------------------------------------
    # Messages and conversations
    # ------------------------------------------------------------------

    def messages(self, chat_id: str) -> Result[list[Message]]:
        return self._read(
            keys.messages_key(chat_id),
            lambda raw: [Message.from_dict(d) for d in raw],
            list,
        )

    def save_messages(self, chat_id: str, messages: list[Message]) -> Result[None]:
        return self._write(*self.messages_write(chat_id, messages))

    def conversations(self, user_id: str) -> Result[list[Conversation]]:
        return self._read(
            keys.conversations_key(user_id),
            lambda raw: [Conversation.from_dict(d) for d in raw],
            list,
        )

    def save_conversations(self, user_id: str, conversations: list[Conversation]) -> Result[None]:
        return self._write(*self.conversations_write(user_id, conversations))

    def merge_conversation(self, user_id: str, conversation_id: str, **changes) -> Result[Optional[Conversation]]:
        """Partially update one conversation row; value is None if not found."""
        result = self.conversations(user_id)
        if not result.ok:
            return Result.failure(result.error)
        rows = result.value
        for i, row in enumerate(rows):
            if row.id == conversation_id:
                rows[i] = row.with_changes(**changes)
                saved = self.save_conversations(user_id, rows)
                if not saved.ok:
                    return Result.failure(saved.error)
                return Result.success(rows[i])
        return Result.success(None)

    # ------------------------------------------------------------------
    # Annotations: reactions, stars, blocks
    # ------------------------------------------------------------------

    def reactions(self, chat_id: str) -> Result[Reactions]:
        return self._read(
            keys.reactions_key(chat_id),
            lambda raw: {mid: {e: int(n) for e, n in counts.items()} for mid, counts in raw.items()},
            dict,
        )

    def save_reactions(self, chat_id: str, reactions: Reactions) -> Result[None]:
        return self._write(*self.reactions_write(chat_id, reactions))

    def starred(self, user_id: str) -> Result[list[StarredMessage]]:
        return self._read(
            keys.starred_key(user_id),
            lambda raw: [StarredMessage.from_dict(d) for d in raw],
            list,
        )

    def save_starred(self, user_id: str, starred: list[StarredMessage]) -> Result[None]:
        return self._write(keys.starred_key(user_id), [s.to_dict() for s in starred])

    def blocked(self, user_id: str) -> Result[list[BlockedUser]]:
        return self._read(
            keys.blocked_key(user_id),
            lambda raw: [BlockedUser.from_dict(d) for d in raw],
            list,
        )

    # ------------------------------------------------------------------
    # Session and settings
    # ------------------------------------------------------------------

    def session_user(self) -> Result[Optional[User]]:
        return self._read(keys.SESSION_USER, User.from_dict, lambda: None)

    def auth_token(self) -> Result[Optional[str]]:
        return self._read(keys.AUTH_TOKEN, str, lambda: None)

    def save_session(self, user: User, token: str) -> Result[None]:
        saved = self._write(keys.AUTH_TOKEN, token)
        if not saved.ok:
            return saved
        return self._write(*self.session_user_write(user))

    def clear_session(self) -> Result[None]:
        cleared = self._write(keys.AUTH_TOKEN, None)
        if not cleared.ok:
            return cleared
        return self._write(keys.SESSION_USER, None)

    def settings(self) -> Result[AppSettings]:
        return self._read(keys.APP_SETTINGS, AppSettings.from_dict, AppSettings)

    def save_settings(self, settings: AppSettings) -> Result[None]:
        return self._write(keys.APP_SETTINGS, settings.to_dict())
