"""
Document store interface.

A store maps string keys to JSON-serializable documents. It offers no
transactions; ``babelchat.journal`` sequences multi-key writes on top.

Contract:
- ``get`` returns None for a missing key; a miss is never an error
- any I/O or decoding failure raises ``StorageError``
- ``set`` replaces the whole document under a key
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional


class DocumentStore(ABC):
    """Abstract key/value store of JSON documents."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the document under ``key`` or None if absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``."""
        pass

    @abstractmethod
    def remove(self, key: str) -> None:
        """Delete ``key``; removing a missing key is a no-op."""
        pass

    def keys(self) -> list[str]:
        """List stored keys (optional; used by diagnostics)."""
        return []
