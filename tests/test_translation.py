"""
Tests for the translation stub: phrasebook translator and language detection.

Run with: pytest tests/test_translation.py -v
"""

import json

import pytest

from babelchat.translate import (
    EchoTranslator,
    Phrasebook,
    PhrasebookTranslator,
    ScriptDetector,
    create_detector,
    create_translator,
    detect_language,
    get_default_phrasebook,
    translate_text,
)
from babelchat.translate.phrasebook import load_phrasebook_json


class TestPhrasebookTranslator:
    """Tests for the offline stub translator."""

    def test_same_language_is_noop(self):
        """Text is returned unchanged when source and target match."""
        translator = PhrasebookTranslator()
        result = translator.translate("Anything at all", "en", "en")
        assert result.text == "Anything at all"
        assert not result.changed
        assert result.metadata["match"] == "same-language"

    def test_phrasebook_hit(self):
        """Known phrases use the stored rendering."""
        result = PhrasebookTranslator().translate("Hello", "en", "es")
        assert result.text == "Hola"
        assert result.metadata["match"] == "phrasebook"

    def test_tagged_passthrough(self):
        """Unknown phrases come back as '[XX] original text'."""
        translator = PhrasebookTranslator()
        assert translator.translate("See you soon", "en", "de").text == "[DE] See you soon"
        assert translator.translate("See you soon", "en", "zh").text == "[ZH] See you soon"

    def test_lookup_is_exact(self):
        """A phrase only matches the whole message, case-sensitively."""
        translator = PhrasebookTranslator()
        assert translator.translate("hello", "en", "es").text == "[ES] hello"
        assert translator.translate("Hello there", "en", "es").text == "[ES] Hello there"

    def test_translate_many(self):
        """One rendering per distinct language."""
        renderings = PhrasebookTranslator().translate_many("Thank you", "en", ["es", "fr", "es"])
        assert renderings == {"es": "Gracias", "fr": "Merci"}

    def test_module_function(self):
        assert translate_text("Good morning", "en", "it") == "Buongiorno"
        assert translate_text("Good morning", "en", "sv") == "[SV] Good morning"


class TestEchoTranslator:

    def test_modes(self):
        assert EchoTranslator().translate("hi", "en", "fr").text == "hi"
        assert EchoTranslator(mode="upper").translate("hi", "en", "fr").text == "HI"
        assert EchoTranslator(mode="prefix").translate("hi", "en", "fr").text == "[TRANSLATED] hi"


class TestFactory:

    def test_aliases(self):
        assert isinstance(create_translator("phrasebook"), PhrasebookTranslator)
        assert isinstance(create_translator("stub"), PhrasebookTranslator)
        assert isinstance(create_translator("offline"), PhrasebookTranslator)
        assert isinstance(create_translator("dummy"), EchoTranslator)
        assert create_translator("echo", mode="upper").name == "echo-upper"

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown translator backend"):
            create_translator("deepl")

    def test_custom_phrasebook(self):
        book = Phrasebook.from_dict({"Cheers": {"de": "Prost"}})
        translator = create_translator("phrasebook", phrasebook=book)
        assert translator.translate("Cheers", "en", "de").text == "Prost"
        assert translator.translate("Hello", "en", "es").text == "[ES] Hello"

    def test_detector_factory(self):
        assert isinstance(create_detector("heuristic"), ScriptDetector)
        with pytest.raises(ValueError):
            create_detector("neural")


class TestScriptDetector:
    """Tests for script-range language detection."""

    @pytest.mark.parametrize("text,expected", [
        ("مرحبا", "ar"),
        ("你好", "zh"),
        ("こんにちは", "ja"),
        ("안녕하세요", "ko"),
        ("Привет", "ru"),
        ("Καλημέρα", "el"),
        ("Hello", "en"),
        ("Hola, ¿qué tal?", "en"),
    ])
    def test_detect(self, text, expected):
        assert ScriptDetector().detect(text) == expected

    def test_kanji_reads_as_chinese(self):
        """Han characters are checked before kana, so mixed Japanese reads as zh."""
        assert detect_language("お元気ですか、先生") == "zh"

    def test_custom_default(self):
        assert ScriptDetector(default="es").detect("Hola") == "es"


class TestPhrasebook:

    def test_default_phrasebook(self):
        book = get_default_phrasebook()
        assert len(book) == 4
        assert book.lookup("Hello", "ja") == "こんにちは"
        assert book.lookup("Hello", "sv") is None
        assert "es" in book.entry("Thank you").languages

    def test_merge_prefers_other(self):
        base = Phrasebook.from_dict({"Hello": {"es": "Hola"}}, name="base")
        extra = Phrasebook.from_dict({"Hello": {"es": "Buenas"}}, name="extra")
        merged = base.merge(extra)
        assert merged.lookup("Hello", "es") == "Buenas"
        assert merged.name == "base+extra"

    def test_load_json(self, tmp_path):
        path = tmp_path / "travel.json"
        path.write_text(json.dumps({"Where is the station?": {"fr": "Où est la gare ?"}}), encoding="utf-8")
        book = load_phrasebook_json(path)
        assert book.name == "travel"
        assert book.lookup("Where is the station?", "fr") == "Où est la gare ?"

    def test_load_json_rejects_lists(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[]", encoding="utf-8")
        with pytest.raises(ValueError):
            load_phrasebook_json(path)
