"""Translation stub: phrasebook translator and script-based language detection."""

from babelchat.translate.base import (
    EchoTranslator,
    LanguageDetector,
    PhrasebookTranslator,
    ScriptDetector,
    TranslationResult,
    Translator,
    create_detector,
    create_translator,
    detect_language,
    translate_text,
)
from babelchat.translate.phrasebook import Phrasebook, PhrasebookEntry, get_default_phrasebook

__all__ = [
    "EchoTranslator",
    "LanguageDetector",
    "Phrasebook",
    "PhrasebookEntry",
    "PhrasebookTranslator",
    "ScriptDetector",
    "TranslationResult",
    "Translator",
    "create_detector",
    "create_translator",
    "detect_language",
    "get_default_phrasebook",
    "translate_text",
]
