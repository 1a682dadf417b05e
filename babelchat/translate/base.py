"""
Translator and language-detector interfaces and the offline stub backends.

This module defines:
- Abstract Translator interface that all backends implement
- EchoTranslator for testing (echo or simple transformations)
- PhrasebookTranslator, the deterministic stub used by the chat core
- Abstract LanguageDetector interface and the ScriptDetector heuristic
- translate_text() / detect_language(), the two functions the rest of the
  package calls

Design Philosophy:
- Translators and detectors are stateless and pure: no network, no clock
- All translators return TranslationResult with metadata
- A real service is a drop-in replacement behind the same two functions

Known limitation: ScriptDetector only recognises a handful of scripts and
checks Han characters before kana, so Japanese text containing kanji is
reported as ``zh``. Everything in Latin script is ``en``.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from babelchat.translate.phrasebook import Phrasebook, get_default_phrasebook


@dataclass
class TranslationResult:
    """Result of a translation operation.

    Attributes:
        text: The translated text
        source_text: Original source text
        source_lang: Language the text was translated from
        target_lang: Language the text was translated into
        metadata: Additional info (translator name, phrasebook hit...)
    """
    text: str
    source_text: str
    source_lang: str
    target_lang: str
    metadata: dict = field(default_factory=dict)

    @property
    def changed(self) -> bool:
        return self.text != self.source_text


class Translator(ABC):
    """Abstract base class for all translation backends."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the translator name (e.g., 'phrasebook', 'echo')."""
        pass

    @abstractmethod
    def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        """Translate a single message.

        Args:
            text: Source text to translate
            source_lang: Language code of ``text``
            target_lang: Language code to translate into

        Returns:
            TranslationResult with translation and metadata
        """
        pass

    def translate_many(self, text: str, source_lang: str, target_langs: list[str]) -> dict[str, str]:
        """Render ``text`` once per distinct target language."""
        renderings: dict[str, str] = {}
        for lang in target_langs:
            if lang not in renderings:
                renderings[lang] = self.translate(text, source_lang, lang).text
        return renderings


class EchoTranslator(Translator):
    """A dummy translator for testing.

    Modes:
    - 'echo': Return the input unchanged
    - 'upper': Return uppercase version
    - 'prefix': Add [TRANSLATED] prefix
    """

    def __init__(self, mode: str = "echo"):
        self.mode = mode

    @property
    def name(self) -> str:
        return f"echo-{self.mode}"

    def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if self.mode == "upper":
            translated = text.upper()
        elif self.mode == "prefix":
            translated = f"[TRANSLATED] {text}"
        else:
            translated = text

        return TranslationResult(
            text=translated,
            source_text=text,
            source_lang=source_lang,
            target_lang=target_lang,
            metadata={"translator": self.name, "mode": self.mode},
        )


class PhrasebookTranslator(Translator):
    """Offline stub translator.

    - Same source and target language: text is returned unchanged
    - Exact phrasebook hit: the stored rendering
    - Anything else: ``"[XX] original text"`` where XX is the upper-cased
      target code. This tagged passthrough is the stub's observable contract
      and must stay byte-for-byte stable.
    """

    def __init__(self, phrasebook: Phrasebook | None = None):
        self.phrasebook = phrasebook if phrasebook is not None else get_default_phrasebook()

    @property
    def name(self) -> str:
        return "phrasebook"

    def translate(self, text: str, source_lang: str, target_lang: str) -> TranslationResult:
        if source_lang == target_lang:
            return TranslationResult(
                text=text,
                source_text=text,
                source_lang=source_lang,
                target_lang=target_lang,
                metadata={"translator": self.name, "match": "same-language"},
            )

        hit = self.phrasebook.lookup(text, target_lang)
        if hit is not None:
            return TranslationResult(
                text=hit,
                source_text=text,
                source_lang=source_lang,
                target_lang=target_lang,
                metadata={"translator": self.name, "match": "phrasebook"},
            )

        return TranslationResult(
            text=f"[{target_lang.upper()}] {text}",
            source_text=text,
            source_lang=source_lang,
            target_lang=target_lang,
            metadata={"translator": self.name, "match": "passthrough"},
        )


class LanguageDetector(ABC):
    """Strategy interface for guessing the language of a message."""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def detect(self, text: str) -> str:
        """Return a language code for ``text``."""
        pass


class ScriptDetector(LanguageDetector):
    """Guess a language from the Unicode script of its characters.

    Patterns are tried in order and the first script present anywhere in the
    text wins; no script match means ``default``.
    """

    SCRIPTS: list[tuple[str, re.Pattern]] = [
        ("ar", re.compile("[\u0600-\u06FF]")),
        ("zh", re.compile("[\u4E00-\u9FFF]")),
        ("ja", re.compile("[\u3040-\u309F\u30A0-\u30FF]")),
        ("ko", re.compile("[\uAC00-\uD7AF]")),
        ("ru", re.compile("[\u0400-\u04FF]")),
        ("el", re.compile("[\u0370-\u03FF]")),
    ]

    def __init__(self, default: str = "en"):
        self.default = default

    @property
    def name(self) -> str:
        return "script"

    def detect(self, text: str) -> str:
        for code, pattern in self.SCRIPTS:
            if pattern.search(text):
                return code
        return self.default


def create_translator(backend: str = "phrasebook", **kwargs) -> Translator:
    """Factory function to create a translator by name.

    Supported backends and aliases:
        - phrasebook, stub, offline: PhrasebookTranslator (default)
        - echo, dummy, test: EchoTranslator (``mode`` kwarg)
    """
    backend_lower = backend.lower().replace("_", "-")

    if backend_lower in ("phrasebook", "stub", "offline"):
        return PhrasebookTranslator(phrasebook=kwargs.get("phrasebook"))

    elif backend_lower in ("echo", "dummy", "test"):
        return EchoTranslator(mode=kwargs.get("mode", "echo"))

    raise ValueError(
        f"Unknown translator backend: {backend}. "
        f"Available backends: phrasebook, echo"
    )


def create_detector(backend: str = "script", **kwargs) -> LanguageDetector:
    """Factory function to create a language detector by name."""
    if backend.lower() in ("script", "heuristic"):
        return ScriptDetector(default=kwargs.get("default", "en"))
    raise ValueError(f"Unknown language detector: {backend}. Available detectors: script")


_default_translator: Optional[Translator] = None
_default_detector: Optional[LanguageDetector] = None


def translate_text(text: str, from_lang: str, to_lang: str) -> str:
    """Translate with the default stub translator."""
    global _default_translator
    if _default_translator is None:
        _default_translator = PhrasebookTranslator()
    return _default_translator.translate(text, from_lang, to_lang).text


def detect_language(text: str) -> str:
    """Detect with the default script heuristic."""
    global _default_detector
    if _default_detector is None:
        _default_detector = ScriptDetector()
    return _default_detector.detect(text)
