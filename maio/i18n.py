"""
Bilingual text helpers.

Bilingual fields are stored as ``{"en": ..., "mn": ...}`` mappings. Neither key
is enforced by the store, so readers resolve text through ``localized``.
"""

from __future__ import annotations

from typing import Any

LANGUAGES = ("en", "mn")
DEFAULT_LANGUAGE = "en"


def localized(value: Any, lang: str = DEFAULT_LANGUAGE, default: str = "") -> str:
    """Resolve display text for ``lang`` falling back to en, then mn, then default."""
    if value is None:
        return default
    if isinstance(value, str):
        return value or default
    if not isinstance(value, dict):
        return str(value)
    for key in (lang, "en", "mn"):
        text = value.get(key)
        if isinstance(text, str) and text.strip():
            return text
    return default
