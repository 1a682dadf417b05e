"""
Tests for store diagnostics.

Run with: pytest tests/test_diagnostics.py -v
"""

from babelchat.config import ChatConfig
from babelchat.diagnostics import collect_diagnostics, summarize_checks
from babelchat.journal import COMMITTED, Intent, KeyWrite
from babelchat.models import ChatTarget, Conversation
from babelchat.store.keys import intents_key


def _by_name(checks):
    return {c.name: c for c in checks}


class TestDiagnostics:

    def test_clean_store(self, repo, manager, users, tmp_path):
        manager.send(ChatTarget.user(users["bruno"].id), "Hello")
        repo.save_session(users["alice"], "token_x")

        checks = _by_name(collect_diagnostics(repo, tmp_path, users["alice"].id))

        assert checks["Translation backend"].status == "ok"
        assert checks["Store directory"].status == "ok"
        assert checks["Session"].detail == "Signed in as alice"
        assert checks["Journal"].status == "ok"
        assert checks["Conversations"].detail == "1 conversation(s)"
        assert checks["Starred messages"].status == "ok"

    def test_no_session(self, repo):
        checks = _by_name(collect_diagnostics(repo))
        assert checks["Session"].status == "warn"
        assert checks["Store directory"].detail == "In-memory store"
        assert "Journal" not in checks

    def test_problems_are_reported(self, repo, store, users):
        alice_id = users["alice"].id
        store.set(intents_key(alice_id), [Intent(writes=[KeyWrite("a", after=[1])]).to_dict()])
        repo.save_conversations(alice_id, [
            Conversation(id="c1", user_id="user_bruno"),
            Conversation(id="c2", user_id="user_bruno"),
        ])
        store.set(f"starred_{alice_id}", [{"messageId": "gone", "chatId": "user_bruno", "createdAt": 1}])

        checks = _by_name(collect_diagnostics(repo, None, alice_id))

        assert checks["Journal"].status == "warn"
        assert checks["Conversations"].status == "warn"
        assert checks["Starred messages"].detail == "1 star(s) point at deleted messages"

    def test_unknown_backend(self, repo):
        checks = _by_name(collect_diagnostics(repo, config=ChatConfig(translator_backend="deepl")))
        assert checks["Translation backend"].status == "error"
        assert "deepl" in checks["Translation backend"].detail

    def test_committed_intent_is_not_reported(self, repo, store, users):
        alice_id = users["alice"].id
        store.set(intents_key(alice_id), [Intent(writes=[KeyWrite("a", after=[1])], state=COMMITTED).to_dict()])
        checks = _by_name(collect_diagnostics(repo, None, alice_id))
        assert checks["Journal"].status == "ok"

    def test_summary(self, repo, tmp_path):
        summary = summarize_checks(collect_diagnostics(repo, tmp_path / "missing"))
        assert summary["warn"] == 2
        assert summary["error"] == 0
