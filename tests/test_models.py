"""
Tests for data models, the language table, settings and configuration.

Run with: pytest tests/test_models.py -v
"""

import pytest

from babelchat.config import ChatConfig, MAX_PINNED, ensure_dirs, store_dir
from babelchat.errors import InvalidInputError
from babelchat.languages import SUPPORTED_LANGUAGES, get_language_by_code, get_language_name, is_supported
from babelchat.models import ChatTarget, Conversation, Message, User
from babelchat.preferences import PreferenceService
from babelchat.results import Result


class TestChatTarget:

    def test_validity(self):
        assert ChatTarget.user("u1").is_valid
        assert ChatTarget.group("group_1").is_valid
        assert not ChatTarget().is_valid
        assert not ChatTarget(user_id="u1", group_id="group_1").is_valid

    def test_parse(self):
        assert ChatTarget.parse("group_42").is_group
        assert ChatTarget.parse("user_42") == ChatTarget.user("user_42")
        assert ChatTarget.parse("user_42").chat_id == "user_42"


class TestMessage:

    def test_text_for(self):
        message = Message(
            id="m1",
            sender_id="u1",
            group_id="group_1",
            original_text="Hello",
            original_language="en",
            translated_text="Hola",
            translated_language="es",
            translations={"es": "Hola", "fr": "Bonjour"},
            timestamp=1,
        )
        assert message.chat_id == "group_1"
        assert message.text_for("en") == "Hello"
        assert message.text_for("fr") == "Bonjour"
        assert message.text_for("de") == "Hello"

    def test_legacy_document_without_translations(self):
        message = Message.from_dict({
            "id": "m1",
            "senderId": "u1",
            "receiverId": "u2",
            "originalText": "Hello",
            "originalLanguage": "en",
            "translatedText": "Hola",
            "translatedLanguage": "es",
            "timestamp": 3,
            "status": "delivered",
        })
        assert message.translations == {}
        assert message.text_for("es") == "Hola"
        assert message.status.value == "delivered"


class TestConversation:

    def test_matches_keeps_direct_and_group_apart(self):
        row = Conversation(id="c1", user_id="u2")
        assert row.matches(ChatTarget.user("u2"))
        assert not row.matches(ChatTarget.group("u2"))
        group_row = Conversation(id="c2", group_id="group_1", is_group=True)
        assert group_row.matches(ChatTarget.group("group_1"))
        assert not group_row.matches(ChatTarget.user("group_1"))

    def test_sort_timestamp_defaults_to_zero(self):
        assert Conversation(id="c1", user_id="u2").sort_timestamp == 0

    def test_is_group_inferred(self):
        row = Conversation.from_dict({"id": "c1", "groupId": "group_1"})
        assert row.is_group
        assert row.chat_id == "group_1"


class TestUser:

    def test_legacy_password_field(self):
        user = User.from_dict({"id": "u1", "username": "old", "password": "pw"})
        assert user.legacy_password == "pw"
        assert user.display_name == "old"
        assert user.to_dict()["password"] == "pw"
        assert "password" not in user.to_dict(include_credentials=False)


class TestLanguages:

    def test_table(self):
        assert SUPPORTED_LANGUAGES[0].code == "en"
        assert get_language_by_code("es").native_name == "Español"
        assert get_language_name("ja") == "Japanese"
        assert get_language_name("xx") == "xx"
        assert is_supported("ko")
        assert not is_supported("klingon")

    def test_codes_are_unique(self):
        codes = [lang.code for lang in SUPPORTED_LANGUAGES]
        assert len(codes) == len(set(codes))


class TestResult:

    def test_unwrap(self):
        assert Result.success(3).unwrap() == 3
        with pytest.raises(InvalidInputError):
            Result.failure(InvalidInputError("nope")).unwrap()

    def test_stale_value_with_error(self):
        result = Result.failure(InvalidInputError("x"), value=[1])
        assert not result.ok
        assert result.value == [1]


class TestConfig:

    def test_defaults(self):
        config = ChatConfig()
        assert config.max_pinned == MAX_PINNED == 5
        assert config.to_dict()["translator_backend"] == "phrasebook"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BABELCHAT_MAX_PINNED", "3")
        monkeypatch.setenv("BABELCHAT_TRANSLATOR", "echo")
        monkeypatch.setenv("BABELCHAT_DELIVER_TO_PEER", "no")
        config = ChatConfig.from_env()
        assert config.max_pinned == 3
        assert config.translator_backend == "echo"
        assert config.deliver_to_peer is False

    def test_bad_pin_limit_falls_back(self, monkeypatch):
        monkeypatch.setenv("BABELCHAT_MAX_PINNED", "five")
        assert ChatConfig.from_env().max_pinned == MAX_PINNED

    def test_home_override(self, monkeypatch, tmp_path):
        monkeypatch.setenv("BABELCHAT_HOME", str(tmp_path))
        assert store_dir() == tmp_path / "store"
        assert ensure_dirs().is_dir()


class TestPreferences:

    def test_load_defaults(self, repo):
        prefs = PreferenceService(repo)
        assert prefs.load().value.theme == "auto"
        assert prefs.font_points() == 16

    def test_update(self, repo):
        PreferenceService(repo).update(theme="dark", font_size="large")
        prefs = PreferenceService(repo)
        prefs.load()
        assert prefs.settings.theme == "dark"
        assert prefs.font_points() == 18

    def test_rejects_unknown_values(self, repo):
        prefs = PreferenceService(repo)
        assert isinstance(prefs.update(theme="neon").error, InvalidInputError)
        assert isinstance(prefs.update(font_size="huge").error, InvalidInputError)
        assert isinstance(prefs.update(wallpaper="x").error, InvalidInputError)
        assert prefs.settings.theme == "auto"
