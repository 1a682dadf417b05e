"""
Error taxonomy for BabelChat.

Services never raise these across their public boundary; they travel inside
a ``Result`` so the caller decides whether to surface, log or ignore them.
The store is the one place that raises ``StorageError`` directly.
"""

from __future__ import annotations


class ChatError(Exception):
    """Base class for all BabelChat errors."""


class StorageError(ChatError):
    """A document could not be read, decoded or written."""

    def __init__(self, message: str, key: str | None = None):
        super().__init__(message)
        self.key = key


class InvalidInputError(ChatError):
    """The request was malformed (e.g. no chat target, empty text)."""


class NotFoundError(ChatError):
    """A referenced user, group, conversation or message does not exist."""


class PinLimitError(ChatError):
    """Pinning would exceed the pinned-conversation limit."""

    def __init__(self, limit: int):
        super().__init__(f"Cannot pin more than {limit} conversations")
        self.limit = limit


class ArchivedConversationError(ChatError):
    """The operation is not allowed on an archived conversation."""


class BlockedError(ChatError):
    """One side of a direct chat has blocked the other."""


class AuthError(ChatError):
    """Authentication failed or no user is signed in."""
