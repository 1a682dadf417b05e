"""
Phrasebook module for the stub translator.

This module handles:
- A multilingual phrase table (whole-message source text -> per-language text)
- Exact lookups used by ``PhrasebookTranslator``
- Merging custom phrase tables over the built-in one

Design Philosophy:
- Lookups are exact and case-sensitive: a message matches a phrase only when
  its full text equals the phrase
- Phrasebooks are immutable after loading; ``merge`` returns a new one
- No network, no state: the same input always gives the same output
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, Optional


@dataclass(frozen=True)
class PhrasebookEntry:
    """A source phrase and its renderings keyed by language code."""
    source: str
    renderings: tuple[tuple[str, str], ...] = ()

    def get(self, language: str) -> Optional[str]:
        for code, text in self.renderings:
            if code == language:
                return text
        return None

    @property
    def languages(self) -> list[str]:
        return [code for code, _ in self.renderings]


@dataclass
class Phrasebook:
    """A table of whole-message translations.

    Supports:
    - Exact lookup of a phrase in a target language
    - Listing which languages a phrase is available in
    - Merging (the other phrasebook wins on conflicts)
    """
    entries: list[PhrasebookEntry] = field(default_factory=list)
    name: str = "default"

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[PhrasebookEntry]:
        return iter(self.entries)

    def add_entry(self, source: str, renderings: dict[str, str]) -> None:
        self.entries.append(PhrasebookEntry(source, tuple(renderings.items())))

    def entry(self, source: str) -> Optional[PhrasebookEntry]:
        for entry in self.entries:
            if entry.source == source:
                return entry
        return None

    def lookup(self, source: str, language: str) -> Optional[str]:
        """Rendering of ``source`` in ``language``, or None."""
        entry = self.entry(source)
        return entry.get(language) if entry else None

    def to_dict(self) -> dict[str, dict[str, str]]:
        return {e.source: dict(e.renderings) for e in self.entries}

    def merge(self, other: Phrasebook) -> Phrasebook:
        combined = {e.source: e for e in self.entries}
        for entry in other.entries:
            combined[entry.source] = entry
        return Phrasebook(entries=list(combined.values()), name=f"{self.name}+{other.name}")

    @classmethod
    def from_dict(cls, data: dict[str, dict[str, str]], name: str = "custom") -> Phrasebook:
        book = cls(name=name)
        for source, renderings in data.items():
            book.add_entry(source, renderings)
        return book


def load_phrasebook_json(path: str | Path) -> Phrasebook:
    """Load a phrasebook from ``{"phrase": {"es": "...", ...}, ...}`` JSON."""
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Phrasebook {path} must contain a JSON object")
    return Phrasebook.from_dict(data, name=path.stem)


# ============================================================================
# Built-in Phrasebook
# ============================================================================

_DEFAULT_PHRASES: dict[str, dict[str, str]] = {
    "Hello": {
        "es": "Hola",
        "fr": "Bonjour",
        "de": "Hallo",
        "it": "Ciao",
        "pt": "Olá",
        "ru": "Привет",
        "ja": "こんにちは",
        "ko": "안녕하세요",
        "zh": "你好",
        "ar": "مرحبا",
    },
    "How are you?": {
        "es": "¿Cómo estás?",
        "fr": "Comment allez-vous?",
        "de": "Wie geht es dir?",
        "it": "Come stai?",
        "pt": "Como você está?",
        "ru": "Как дела?",
        "ja": "お元気ですか？",
        "ko": "어떻게 지내세요?",
        "zh": "你好吗？",
        "ar": "كيف حالك؟",
    },
    "Good morning": {
        "es": "Buenos días",
        "fr": "Bonjour",
        "de": "Guten Morgen",
        "it": "Buongiorno",
        "pt": "Bom dia",
        "ru": "Доброе утро",
        "ja": "おはようございます",
        "ko": "좋은 아침",
        "zh": "早上好",
        "ar": "صباح الخير",
    },
    "Thank you": {
        "es": "Gracias",
        "fr": "Merci",
        "de": "Danke",
        "it": "Grazie",
        "pt": "Obrigado",
        "ru": "Спасибо",
        "ja": "ありがとう",
        "ko": "감사합니다",
        "zh": "谢谢",
        "ar": "شكرا",
    },
}


def get_default_phrasebook() -> Phrasebook:
    """Return the built-in phrasebook (four greetings in ten languages)."""
    return Phrasebook.from_dict(_DEFAULT_PHRASES, name="default")
