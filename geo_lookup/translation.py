"""Display-name translation for regions and countries."""

from __future__ import annotations

from typing import Any, Optional

from geo_lookup.filters import wants_translation


def translated_name(record: dict[str, Any], lang: Optional[str], default_lang: str) -> str:
    """translations[lang] when present, else the stored name."""
    if not wants_translation(lang, default_lang):
        return record["name"]
    translations = record.get("translations") or {}
    return translations.get(lang) or record["name"]


def localize(record: dict[str, Any], lang: Optional[str], default_lang: str) -> dict[str, Any]:
    return {**record, "name": translated_name(record, lang, default_lang)}


def localize_all(records: list[dict[str, Any]], lang: Optional[str], default_lang: str) -> list[dict[str, Any]]:
    return [localize(r, lang, default_lang) for r in records]
