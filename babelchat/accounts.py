"""
Local accounts: signup, login, session and privacy (blocking).

Authentication is entirely local, as on the device: the ``users`` collection
holds every registered user with a salted password hash, and the signed-in
session lives under the ``auth_token`` and ``user`` keys. Records written by
older clients with a plain ``password`` field still log in.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
import time
import uuid
from dataclasses import replace
from typing import Callable, Optional

from babelchat.errors import AuthError, InvalidInputError, NotFoundError
from babelchat.models import BlockedUser, User
from babelchat.repository import ChatRepository
from babelchat.results import Result
from babelchat.store import keys

logger = logging.getLogger(__name__)

# Attributes update_user() may change
EDITABLE_FIELDS = {
    "display_name",
    "preferred_language",
    "avatar",
    "emoji_status",
    "status",
    "privacy_settings",
    "contacts",
    "last_seen",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


def hash_password(password: str, salt: str) -> str:
    return hashlib.sha256(f"{salt}:{password}".encode("utf-8")).hexdigest()


def verify_password(user: User, password: str) -> bool:
    if user.password_hash and user.password_salt:
        return hmac.compare_digest(user.password_hash, hash_password(password, user.password_salt))
    if user.legacy_password is not None:
        return hmac.compare_digest(user.legacy_password, password)
    return False


class AccountService:
    """Sign users up and in, and manage the signed-in user's profile."""

    def __init__(self, repository: ChatRepository, clock: Callable[[], int] | None = None):
        self.repo = repository
        self.clock = clock or _now_ms
        self.current: Optional[User] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current is not None

    def _require_user(self) -> Result[User]:
        if self.current is None:
            return Result.failure(AuthError("Not signed in"))
        return Result.success(self.current)

    def _token(self) -> str:
        return f"token_{self.clock()}_{secrets.token_hex(4)}"

    def signup(self, username: str, password: str, display_name: str, language: str = "en") -> Result[User]:
        username = (username or "").strip()
        if not username or not password:
            return Result.failure(InvalidInputError("Username and password are required"))

        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error)
        users = loaded.value
        if any(u.username == username for u in users):
            logger.info(f"Signup rejected: username {username} already exists")
            return Result.failure(AuthError(f"Username already exists: {username}"))

        user_id = f"user_{self.clock()}"
        if any(u.id == user_id for u in users):
            user_id = f"{user_id}_{uuid.uuid4().hex[:4]}"
        salt = secrets.token_hex(8)
        user = User(
            id=user_id,
            username=username,
            display_name=(display_name or username).strip(),
            preferred_language=language,
            password_hash=hash_password(password, salt),
            password_salt=salt,
        )
        writes = [
            self.repo.users_write(users + [user]),
            (keys.AUTH_TOKEN, self._token()),
            self.repo.session_user_write(user),
        ]
        committed = self.repo.transaction(user.id, writes, label="signup")
        if not committed.ok:
            return Result.failure(committed.error)
        self.current = user
        logger.info(f"Signed up {username} ({user.id})")
        return Result.success(user)

    def login(self, username: str, password: str) -> Result[User]:
        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error)
        user = next((u for u in loaded.value if u.username == username), None)
        if user is None or not verify_password(user, password):
            logger.info(f"Login failed for {username}")
            return Result.failure(AuthError("Unknown username or wrong password"))

        saved = self.repo.save_session(user, self._token())
        if not saved.ok:
            return Result.failure(saved.error)
        self.current = user
        return Result.success(user)

    def logout(self) -> Result[None]:
        cleared = self.repo.clear_session()
        if cleared.ok:
            self.current = None
        return cleared

    def restore_session(self) -> Result[Optional[User]]:
        """Reload the signed-in user saved by a previous login or signup."""
        token = self.repo.auth_token()
        if not token.ok:
            return Result.failure(token.error)
        if not token.value:
            return Result.success(None)
        session = self.repo.session_user()
        if not session.ok:
            return Result.failure(session.error)
        self.current = session.value
        return Result.success(session.value)

    def _store_user(self, user: User, users: list[User], extra_writes=(), label: str = "update-user") -> Result[User]:
        merged = [user if u.id == user.id else u for u in users]
        writes = [self.repo.users_write(merged), self.repo.session_user_write(user), *extra_writes]
        committed = self.repo.transaction(user.id, writes, label=label)
        if not committed.ok:
            return Result.failure(committed.error)
        self.current = user
        return Result.success(user)

    def _stored_self(self, users: list[User]) -> User:
        me = self.current
        return next((u for u in users if u.id == me.id), me)

    def update_user(self, **changes) -> Result[User]:
        """Merge profile changes into the session and the users collection."""
        me = self._require_user()
        if not me.ok:
            return me
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            return Result.failure(InvalidInputError(f"Cannot update: {', '.join(sorted(unknown))}"))
        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error)
        updated = replace(self._stored_self(loaded.value), **changes)
        return self._store_user(updated, loaded.value)

    def search_users(self, query: str = "") -> Result[list[User]]:
        """Other users whose username or display name contains ``query``."""
        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error, value=[])
        q = query.lower()
        own_id = self.current.id if self.current else None
        return Result.success([
            u for u in loaded.value
            if u.id != own_id and (q in u.username.lower() or q in u.display_name.lower())
        ])

    # ------------------------------------------------------------------
    # Privacy
    # ------------------------------------------------------------------

    def blocked_users(self) -> Result[list[BlockedUser]]:
        me = self._require_user()
        if not me.ok:
            return Result.failure(me.error, value=[])
        return self.repo.blocked(me.value.id)

    def block_user(self, target_id: str) -> Result[BlockedUser]:
        me = self._require_user()
        if not me.ok:
            return Result.failure(me.error)
        if target_id == me.value.id:
            return Result.failure(InvalidInputError("You cannot block yourself"))

        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error)
        target = next((u for u in loaded.value if u.id == target_id), None)
        if target is None:
            return Result.failure(NotFoundError(f"No such user: {target_id}"))

        blocked = self.repo.blocked(me.value.id)
        if not blocked.ok:
            return Result.failure(blocked.error)
        existing = next((b for b in blocked.value if b.id == target_id), None)
        if existing is not None:
            return Result.success(existing)

        entry = BlockedUser(target.id, target.username, target.display_name, self.clock())
        stored = self._stored_self(loaded.value)
        updated = replace(stored, blocked_users=stored.blocked_users + [target.id])
        result = self._store_user(
            updated,
            loaded.value,
            extra_writes=[self.repo.blocked_write(updated.id, blocked.value + [entry])],
            label="block",
        )
        if not result.ok:
            return Result.failure(result.error)
        logger.info(f"{updated.id} blocked {target.id}")
        return Result.success(entry)

    def unblock_user(self, target_id: str) -> Result[bool]:
        me = self._require_user()
        if not me.ok:
            return Result.failure(me.error, value=False)
        loaded = self.repo.users()
        if not loaded.ok:
            return Result.failure(loaded.error, value=False)
        blocked = self.repo.blocked(me.value.id)
        if not blocked.ok:
            return Result.failure(blocked.error, value=False)

        stored = self._stored_self(loaded.value)
        if target_id not in stored.blocked_users and not any(b.id == target_id for b in blocked.value):
            return Result.success(False)

        updated = replace(stored, blocked_users=[u for u in stored.blocked_users if u != target_id])
        remaining = [b for b in blocked.value if b.id != target_id]
        result = self._store_user(
            updated,
            loaded.value,
            extra_writes=[self.repo.blocked_write(updated.id, remaining)],
            label="unblock",
        )
        if not result.ok:
            return Result.failure(result.error, value=False)
        return Result.success(True)
