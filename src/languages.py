"""Display names for the language codes reported by the detector."""

from __future__ import annotations

from types import MappingProxyType

LANGUAGE_NAMES = MappingProxyType(
    {
        "be": "Belarusian",
        "ca": "Catalan",
        "da": "Danish",
        "de": "German",
        "eo": "Esperanto",
        "et": "Estonian",
        "el": "Greek",
        "en": "English",
        "es": "Spanish",
        "fi": "Finnish",
        "fr": "French",
        "fa": "Persian",
        "gl": "Galician",
        "hu": "Hungarian",
        "is": "Icelandic",
        "it": "Italian",
        "lt": "Lithuanian",
        "nl": "Dutch",
        "no": "Norwegian",
        "pl": "Polish",
        "pt": "Portuguese",
        "ro": "Romanian",
        "ru": "Russian",
        "sk": "Slovakian",
        "sl": "Slovenian",
        "sv": "Swedish",
        "th": "Thai",
        "uk": "Ukrainian",
    }
)


def display_name(code: str) -> str:
    """Return the human readable name for ``code``, or the code itself."""
    return LANGUAGE_NAMES.get(code, code)


__all__ = ["LANGUAGE_NAMES", "display_name"]
