from __future__ import annotations

import copy
import json
from typing import Any, Optional

from babelchat.errors import StorageError
from babelchat.store.base import DocumentStore


class MemoryStore(DocumentStore):
    """In-process store.

    Documents are deep-copied in and out so callers can never mutate stored
    state by accident, and values are checked for JSON compatibility the same
    way the file store would.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    def get(self, key: str) -> Optional[Any]:
        if key not in self._data:
            return None
        return copy.deepcopy(self._data[key])

    def set(self, key: str, value: Any) -> None:
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}", key=key) from e
        self._data[key] = copy.deepcopy(value)

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)
