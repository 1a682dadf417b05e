"""
Tests for local accounts, sessions and blocking.

Run with: pytest tests/test_accounts.py -v
"""

from babelchat.accounts import AccountService, hash_password, verify_password
from babelchat.errors import AuthError, InvalidInputError, NotFoundError
from babelchat.models import User
from babelchat.store.keys import AUTH_TOKEN, SESSION_USER, USERS, blocked_key


class TestSignupLogin:

    def test_signup_signs_in(self, repo, store, clock):
        accounts = AccountService(repo, clock=clock)
        result = accounts.signup("fatima", "s3cret", "Fatima", "ar")

        assert result.ok
        user = result.value
        assert accounts.is_authenticated
        assert user.preferred_language == "ar"
        assert user.password_hash == hash_password("s3cret", user.password_salt)
        assert store.get(AUTH_TOKEN).startswith("token_")
        assert store.get(SESSION_USER)["id"] == user.id
        assert "passwordHash" not in store.get(SESSION_USER)
        assert any(u["username"] == "fatima" for u in store.get(USERS))

    def test_duplicate_username(self, repo, clock):
        result = AccountService(repo, clock=clock).signup("alice", "pw", "Another Alice")
        assert isinstance(result.error, AuthError)

    def test_missing_fields(self, repo, clock):
        result = AccountService(repo, clock=clock).signup("  ", "pw", "Nobody")
        assert isinstance(result.error, InvalidInputError)

    def test_ids_are_unique_under_fixed_time(self, repo):
        accounts = AccountService(repo, clock=lambda: 42)
        first = accounts.signup("gus", "pw", "Gus").value
        second = accounts.signup("hana", "pw", "Hana").value
        assert first.id != second.id

    def test_login(self, repo, clock):
        AccountService(repo, clock=clock).signup("fatima", "s3cret", "Fatima")
        accounts = AccountService(repo, clock=clock)

        assert isinstance(accounts.login("fatima", "wrong").error, AuthError)
        assert isinstance(accounts.login("nobody", "s3cret").error, AuthError)
        assert accounts.login("fatima", "s3cret").value.username == "fatima"

    def test_legacy_plain_password(self, repo, clock, users):
        legacy = User(id="user_old", username="old", display_name="Old", legacy_password="pw")
        repo.save_users(list(users.values()) + [legacy])
        assert verify_password(legacy, "pw")
        assert AccountService(repo, clock=clock).login("old", "pw").ok

    def test_logout_and_restore(self, repo, clock):
        AccountService(repo, clock=clock).signup("fatima", "s3cret", "Fatima")

        restored = AccountService(repo, clock=clock)
        assert restored.restore_session().value.username == "fatima"

        restored.logout()
        assert not restored.is_authenticated
        assert AccountService(repo, clock=clock).restore_session().value is None


class TestProfile:

    def _signed_in(self, repo, clock, users) -> AccountService:
        accounts = AccountService(repo, clock=clock)
        repo.save_session(users["alice"], "token_x")
        accounts.restore_session()
        return accounts

    def test_update_user(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        updated = accounts.update_user(preferred_language="de", emoji_status="🌍").value

        assert updated.preferred_language == "de"
        stored = repo.find_user(users["alice"].id).value
        assert stored.preferred_language == "de"
        assert repo.session_user().value.emoji_status == "🌍"

    def test_update_rejects_unknown_fields(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        assert isinstance(accounts.update_user(username="mallory").error, InvalidInputError)

    def test_update_requires_session(self, repo, clock):
        assert isinstance(AccountService(repo, clock=clock).update_user(avatar="x").error, AuthError)

    def test_search_excludes_self(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        found = accounts.search_users("").value
        assert users["alice"].id not in {u.id for u in found}
        assert [u.username for u in accounts.search_users("CHE").value] == ["chen"]


class TestBlocking:

    def _signed_in(self, repo, clock, users) -> AccountService:
        accounts = AccountService(repo, clock=clock)
        repo.save_session(users["alice"], "token_x")
        accounts.restore_session()
        return accounts

    def test_block_user(self, repo, store, clock, users):
        accounts = self._signed_in(repo, clock, users)
        entry = accounts.block_user(users["bruno"].id).value

        assert entry.display_name == "Bruno"
        assert repo.find_user(users["alice"].id).value.blocked_users == [users["bruno"].id]
        assert repo.session_user().value.has_blocked(users["bruno"].id)
        assert [b["id"] for b in store.get(blocked_key(users["alice"].id))] == [users["bruno"].id]

    def test_block_twice_returns_existing(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        first = accounts.block_user(users["bruno"].id).value
        second = accounts.block_user(users["bruno"].id).value
        assert first == second
        assert len(accounts.blocked_users().value) == 1

    def test_block_validation(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        assert isinstance(accounts.block_user(users["alice"].id).error, InvalidInputError)
        assert isinstance(accounts.block_user("user_ghost").error, NotFoundError)

    def test_unblock(self, repo, clock, users):
        accounts = self._signed_in(repo, clock, users)
        accounts.block_user(users["bruno"].id)

        assert accounts.unblock_user(users["bruno"].id).value is True
        assert accounts.blocked_users().value == []
        assert repo.find_user(users["alice"].id).value.blocked_users == []
        assert accounts.unblock_user(users["bruno"].id).value is False
