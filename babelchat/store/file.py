"""
File-backed document store.

Each key is one JSON file under the store directory. Writes go to a
temporary file in the same directory and are moved into place with
``os.replace`` so a single ``set`` is atomic; nothing spans keys.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional
from urllib.parse import quote, unquote

from babelchat.errors import StorageError
from babelchat.store.base import DocumentStore

logger = logging.getLogger(__name__)

SUFFIX = ".json"


class JsonFileStore(DocumentStore):
    """Store documents as ``<root>/<quoted key>.json``."""

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key:
            raise StorageError("Empty storage key", key=key)
        return self.root / f"{quote(key, safe='')}{SUFFIX}"

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {key}: {e}", key=key) from e

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageError(f"Value for {key} is not JSON-serializable: {e}", key=key) from e

        try:
            self.root.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageError(f"Cannot write {key}: {e}", key=key) from e
        logger.debug(f"Wrote {key} ({len(payload)} bytes)")

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot remove {key}: {e}", key=key) from e

    def keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            unquote(p.name[: -len(SUFFIX)])
            for p in self.root.glob(f"*{SUFFIX}")
            if not p.name.startswith(".tmp-")
        )
