"""
Tests for the intent journal that makes multi-key writes all-or-nothing.

Run with: pytest tests/test_journal.py -v
"""

import pytest

from babelchat.errors import StorageError
from babelchat.journal import ABORTING, COMMITTED, Intent, Journal, KeyWrite
from babelchat.repository import ChatRepository
from babelchat.store.keys import intents_key


class TestJournalRun:

    def test_applies_all_writes(self, store, clock):
        journal = Journal(store, "u1", clock=clock)
        journal.run([("a", [1]), ("b", {"x": 1})], label="test")
        assert store.get("a") == [1]
        assert store.get("b") == {"x": 1}
        assert store.get(intents_key("u1")) is None

    def test_none_removes_key(self, store, clock):
        store.set("a", [1])
        Journal(store, "u1", clock=clock).run([("a", None)])
        assert store.get("a") is None

    def test_failed_write_rolls_back(self, store, clock):
        """A failure on the second key restores the first one."""
        store.set("a", ["old"])
        store.fail_set.add("b")
        journal = Journal(store, "u1", clock=clock)

        with pytest.raises(StorageError):
            journal.run([("a", ["new"]), ("b", ["new"])], label="send")

        assert store.get("a") == ["old"]
        assert store.get("b") is None
        assert journal.pending() == []

    def test_failed_intent_write_changes_nothing(self, store, clock):
        store.fail_set.add(intents_key("u1"))
        with pytest.raises(StorageError):
            Journal(store, "u1", clock=clock).run([("a", [1])])
        assert store.get("a") is None

    def test_failed_rollback_marks_aborting(self, store, clock):
        store.fail_set.add("b")
        store.fail_remove.add("a")
        journal = Journal(store, "u1", clock=clock)

        with pytest.raises(StorageError):
            journal.run([("a", [1]), ("b", [2])], label="send")

        pending = journal.pending()
        assert len(pending) == 1
        assert pending[0].state == ABORTING
        assert pending[0].label == "send"

        store.fail_remove.clear()
        assert journal.reconcile() == 1
        assert store.get("a") is None
        assert journal.pending() == []


    def test_uncleared_intent_is_not_replayed(self, store, clock):
        """A record that could not be removed must not undo later writes."""
        journal = Journal(store, "u1", clock=clock)
        store.fail_remove.add(intents_key("u1"))
        journal.run([("log", ["hello"])], label="send")

        assert journal.pending() == []
        assert store.get(intents_key("u1"))[0]["state"] == COMMITTED

        store.fail_remove.clear()
        journal.run([("log", ["hello", "thanks"])], label="send")
        journal.reconcile()

        assert store.get("log") == ["hello", "thanks"]
        assert store.get(intents_key("u1")) is None

    def test_malformed_intent_log(self, store, clock):
        store.set(intents_key("u1"), [{"writes": [{"after": [1]}]}])
        journal = Journal(store, "u1", clock=clock)
        with pytest.raises(StorageError):
            journal.run([("a", [1])])
        assert store.get("a") is None

        result = ChatRepository(store, clock=clock).transaction("u1", [("a", [1])])
        assert isinstance(result.error, StorageError)

class TestReconcile:
    """Recovery of intents left behind by an interrupted process."""

    def test_pending_intent_rolls_forward(self, store, clock):
        intent = Intent(
            writes=[KeyWrite("a", after=["new"], before=["old"]), KeyWrite("b", after=["new"])],
            label="send",
        )
        store.set("a", ["new"])
        store.set(intents_key("u1"), [intent.to_dict()])

        journal = Journal(store, "u1", clock=clock)
        assert journal.reconcile() == 1
        assert store.get("a") == ["new"]
        assert store.get("b") == ["new"]
        assert store.get(intents_key("u1")) is None

    def test_overwritten_key_is_left_alone(self, store, clock):
        intent = Intent(writes=[KeyWrite("a", after=["new"], before=["old"]), KeyWrite("b", after=["new"])])
        store.set("a", ["newer"])
        store.set(intents_key("u1"), [intent.to_dict()])

        assert Journal(store, "u1", clock=clock).reconcile() == 1
        assert store.get("a") == ["newer"]
        assert store.get("b") == ["new"]

    def test_committed_intent_is_dropped(self, store, clock):
        intent = Intent(writes=[KeyWrite("a", after=["old"])], state=COMMITTED)
        store.set("a", ["newer"])
        store.set(intents_key("u1"), [intent.to_dict()])

        assert Journal(store, "u1", clock=clock).reconcile() == 1
        assert store.get("a") == ["newer"]
        assert store.get(intents_key("u1")) is None

    def test_unresolvable_intent_is_kept(self, store, clock):
        intent = Intent(writes=[KeyWrite("a", after=[1])])
        store.set(intents_key("u1"), [intent.to_dict()])
        store.fail_set.add("a")

        journal = Journal(store, "u1", clock=clock)
        assert journal.reconcile() == 0
        assert [i.intent_id for i in journal.pending()] == [intent.intent_id]

    def test_nothing_to_do(self, store, clock):
        assert Journal(store, "u1", clock=clock).reconcile() == 0

    def test_repository_reconcile(self, store, clock):
        intent = Intent(writes=[KeyWrite("a", after=[1])])
        store.set(intents_key("u1"), [intent.to_dict()])
        result = ChatRepository(store, clock=clock).reconcile("u1")
        assert result.ok
        assert result.value == 1

    def test_intent_serialization(self):
        intent = Intent(writes=[KeyWrite("a", after=[1], before=None)], label="x", created_at=7)
        restored = Intent.from_dict(intent.to_dict())
        assert restored == intent
