"""
Supported languages.

The table is what the client offers as a preferred language at signup; the
translation stub does not need a language to be listed here to produce its
tagged passthrough.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Language:
    code: str
    name: str
    native_name: str


SUPPORTED_LANGUAGES: list[Language] = [
    Language("en", "English", "English"),
    Language("es", "Spanish", "Español"),
    Language("fr", "French", "Français"),
    Language("de", "German", "Deutsch"),
    Language("it", "Italian", "Italiano"),
    Language("pt", "Portuguese", "Português"),
    Language("ru", "Russian", "Русский"),
    Language("ja", "Japanese", "日本語"),
    Language("ko", "Korean", "한국어"),
    Language("zh", "Chinese", "中文"),
    Language("ar", "Arabic", "العربية"),
    Language("hi", "Hindi", "हिन्दी"),
    Language("bn", "Bengali", "বাংলা"),
    Language("tr", "Turkish", "Türkçe"),
    Language("vi", "Vietnamese", "Tiếng Việt"),
    Language("pl", "Polish", "Polski"),
    Language("uk", "Ukrainian", "Українська"),
    Language("nl", "Dutch", "Nederlands"),
    Language("sv", "Swedish", "Svenska"),
    Language("no", "Norwegian", "Norsk"),
    Language("da", "Danish", "Dansk"),
    Language("fi", "Finnish", "Suomi"),
    Language("el", "Greek", "Ελληνικά"),
    Language("cs", "Czech", "Čeština"),
    Language("ro", "Romanian", "Română"),
    Language("hu", "Hungarian", "Magyar"),
    Language("th", "Thai", "ไทย"),
    Language("id", "Indonesian", "Bahasa Indonesia"),
    Language("ms", "Malay", "Bahasa Melayu"),
    Language("he", "Hebrew", "עברית"),
    Language("fa", "Persian", "فارسی"),
    Language("ur", "Urdu", "اردو"),
    Language("sw", "Swahili", "Kiswahili"),
    Language("af", "Afrikaans", "Afrikaans"),
    Language("sq", "Albanian", "Shqip"),
    Language("am", "Amharic", "አማርኛ"),
    Language("hy", "Armenian", "Հայերեն"),
    Language("az", "Azerbaijani", "Azərbaycan"),
    Language("eu", "Basque", "Euskara"),
    Language("be", "Belarusian", "Беларуская"),
    Language("bs", "Bosnian", "Bosanski"),
    Language("bg", "Bulgarian", "Български"),
    Language("ca", "Catalan", "Català"),
    Language("hr", "Croatian", "Hrvatski"),
    Language("et", "Estonian", "Eesti"),
    Language("tl", "Filipino", "Filipino"),
    Language("gl", "Galician", "Galego"),
    Language("ka", "Georgian", "ქართული"),
    Language("gu", "Gujarati", "ગુજરાતી"),
    Language("is", "Icelandic", "Íslenska"),
    Language("kn", "Kannada", "ಕನ್ನಡ"),
    Language("kk", "Kazakh", "Қазақ"),
    Language("km", "Khmer", "ខ្មែរ"),
    Language("lo", "Lao", "ລາວ"),
    Language("lv", "Latvian", "Latviešu"),
    Language("lt", "Lithuanian", "Lietuvių"),
    Language("mk", "Macedonian", "Македонски"),
]

_BY_CODE = {lang.code: lang for lang in SUPPORTED_LANGUAGES}


def get_language_by_code(code: str) -> Optional[Language]:
    return _BY_CODE.get(code)


def get_language_name(code: str) -> str:
    """English name for a code, or the code itself when unknown."""
    language = get_language_by_code(code)
    return language.name if language else code


def is_supported(code: str) -> bool:
    return code in _BY_CODE
