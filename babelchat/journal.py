"""
Intent journal for multi-key writes.

The document store only makes single-key writes atomic. Operations such as
sending a message touch several keys (the chat's message log and one or two
conversation lists) and must be observed together or not at all.

Protocol:
1. Read the current ("before") value of every key the operation touches
2. Append an intent record with the before and after images to
   ``intents_<ownerId>``; if this fails nothing has changed
3. Apply the writes in order
4. Remove the intent record (commit)

If a write fails in step 3 the journal restores every before image and drops
the record. If that rollback fails too the record is left in state
``aborting`` for ``reconcile()``. A record still ``pending`` at startup means
the process stopped between steps 2 and 4; ``reconcile()`` rolls it forward.
If step 4 fails the record is rewritten as ``committed`` and is dropped
without being replayed.

``reconcile()`` only touches a key whose current value is still one of the
intent's two images. A key holding anything else was written by a later
operation and is left alone.

A ``None`` image means "key absent": applying it removes the key.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from babelchat.errors import StorageError
from babelchat.store.base import DocumentStore
from babelchat.store.keys import intents_key

logger = logging.getLogger(__name__)

PENDING = "pending"
ABORTING = "aborting"
COMMITTED = "committed"


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class KeyWrite:
    """One key's before and after image within an intent."""
    key: str
    after: Optional[Any]
    before: Optional[Any] = None

    def to_dict(self) -> dict:
        return {"key": self.key, "before": self.before, "after": self.after}

    @classmethod
    def from_dict(cls, d: dict) -> KeyWrite:
        return cls(key=d["key"], after=d.get("after"), before=d.get("before"))


@dataclass
class Intent:
    """A recorded multi-key write."""
    writes: list[KeyWrite]
    label: str = ""
    intent_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    created_at: int = 0
    state: str = PENDING

    def to_dict(self) -> dict:
        return {
            "id": self.intent_id,
            "label": self.label,
            "createdAt": self.created_at,
            "state": self.state,
            "writes": [w.to_dict() for w in self.writes],
        }

    @classmethod
    def from_dict(cls, d: dict) -> Intent:
        return cls(
            intent_id=d.get("id", uuid.uuid4().hex[:8]),
            label=d.get("label", ""),
            created_at=d.get("createdAt", 0),
            state=d.get("state", PENDING),
            writes=[KeyWrite.from_dict(w) for w in d.get("writes", [])],
        )


class Journal:
    """Sequences multi-key writes for one owner through an intent log."""

    def __init__(
        self,
        store: DocumentStore,
        owner_id: str,
        clock: Callable[[], int] | None = None,
    ):
        self.store = store
        self.owner_id = owner_id
        self.clock = clock or _now_ms

    @property
    def key(self) -> str:
        return intents_key(self.owner_id)

    def _load(self) -> list[Intent]:
        raw = self.store.get(self.key) or []
        try:
            return [Intent.from_dict(d) for d in raw]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StorageError(f"Malformed intent log under {self.key}: {e}", key=self.key) from e

    def _save(self, intents: list[Intent]) -> None:
        if intents:
            self.store.set(self.key, [i.to_dict() for i in intents])
        else:
            self.store.remove(self.key)

    def _apply(self, key: str, value: Optional[Any]) -> None:
        if value is None:
            self.store.remove(key)
        else:
            self.store.set(key, value)

    def pending(self) -> list[Intent]:
        """Intents left behind by an interrupted operation."""
        return [i for i in self._load() if i.state != COMMITTED]

    def run(self, writes: list[tuple[str, Optional[Any]]], label: str = "") -> Intent:
        """Apply ``writes`` (key, new value) all-or-nothing.

        Raises:
            StorageError: nothing was applied, or everything was rolled back
                (or left for ``reconcile``)
        """
        key_writes = [KeyWrite(key=k, after=v, before=self.store.get(k)) for k, v in writes]
        intent = Intent(writes=key_writes, label=label, created_at=self.clock())

        existing = [i for i in self._load() if i.state != COMMITTED]
        self._save(existing + [intent])

        try:
            for w in key_writes:
                self._apply(w.key, w.after)
        except StorageError as e:
            logger.error(f"Write failed during {label or 'intent'} {intent.intent_id} on {e.key}: {e}")
            self._abort(intent, existing)
            raise

        try:
            self._save(existing)
        except StorageError as e:
            logger.warning(f"Could not clear intent {intent.intent_id}: {e}")
            intent.state = COMMITTED
            try:
                self._save(existing + [intent])
            except StorageError as e2:
                # Still pending; reconcile() skips keys that have moved on.
                logger.error(f"Could not mark intent {intent.intent_id} as committed: {e2}")
        return intent

    def _abort(self, intent: Intent, others: list[Intent]) -> None:
        try:
            for w in reversed(intent.writes):
                self._apply(w.key, w.before)
            self._save(others)
            return
        except StorageError as e:
            logger.error(f"Rollback of intent {intent.intent_id} failed: {e}")

        intent.state = ABORTING
        try:
            self._save(others + [intent])
        except StorageError as e:
            logger.error(f"Could not mark intent {intent.intent_id} as aborting: {e}")

    def _replay(self, intent: Intent) -> None:
        if intent.state == COMMITTED:
            return
        rollback = intent.state == ABORTING
        ordered = reversed(intent.writes) if rollback else intent.writes
        for w in ordered:
            current = self.store.get(w.key)
            if current != w.before and current != w.after:
                logger.warning(f"Skipping {w.key} for intent {intent.intent_id}: overwritten since")
                continue
            self._apply(w.key, w.before if rollback else w.after)

    def reconcile(self) -> int:
        """Finish or undo interrupted intents; return how many were resolved."""
        intents = self._load()
        resolved = 0
        remaining: list[Intent] = []
        for intent in intents:
            try:
                self._replay(intent)
                resolved += 1
                logger.info(f"Reconciled intent {intent.intent_id} ({intent.state}, {intent.label})")
            except StorageError as e:
                logger.error(f"Could not reconcile intent {intent.intent_id}: {e}")
                remaining.append(intent)
        if resolved:
            self._save(remaining)
        return resolved
