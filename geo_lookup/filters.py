"""
Pure builders for MongoDB filter documents.

Every route turns its validated parameters into a filter here and hands it
to the store unchanged. Nothing in this module touches the database.

Text matching is a case-insensitive *literal* substring match: user input is
regex-escaped, so "St. L" matches "St. Louis" and never "Stall".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

Filter = dict[str, Any]

# Language codes end up inside a field path (translations.<lang>), so only
# plain BCP 47 style tags are accepted: "fr", "pt-BR", "zh_CN".
LANG_PATTERN = r"^[A-Za-z]{2,3}([-_][A-Za-z0-9]{2,8})?$"


@dataclass(frozen=True)
class Page:
    limit: int
    offset: int = 0


def contains(term: str) -> Filter:
    return {"$regex": re.escape(term), "$options": "i"}


def parse_id(raw: str) -> Optional[int]:
    """Parse a numeric path id; None when it is not an integer."""
    try:
        return int(raw.strip())
    except (ValueError, AttributeError):
        return None


def wants_translation(lang: Optional[str], default_lang: str) -> bool:
    return bool(lang) and lang != default_lang


# ── Exact lookups ─────────────────────────────────────────────────────

def by_id(entity_id: int) -> Filter:
    return {"id": entity_id}


def by_parent(field: str, parent_id: int) -> Filter:
    return {field: parent_id}


def by_iso2(code: str) -> Filter:
    return {"iso2": code.strip().upper()}


# ── List filters ──────────────────────────────────────────────────────

def country_name_filter(name: Optional[str], lang: Optional[str], default_lang: str) -> Filter:
    if not name:
        return {}
    pattern = contains(name)
    clauses: list[Filter] = [{"name": pattern}, {"native": pattern}]
    if wants_translation(lang, default_lang):
        clauses.append({f"translations.{lang}": pattern})
    return {"$or": clauses}


def state_list_filter(country_id: Optional[int]) -> Filter:
    query: Filter = {}
    if country_id is not None:
        query["country_id"] = country_id
    return query


def city_list_filter(
    name: Optional[str],
    country_id: Optional[int],
    state_id: Optional[int],
) -> Filter:
    query: Filter = {}
    if name:
        query["name"] = contains(name)
    if country_id is not None:
        query["country_id"] = country_id
    if state_id is not None:
        query["state_id"] = state_id
    return query


# ── Search filters ────────────────────────────────────────────────────

def country_search_filter(q: str, lang: Optional[str], default_lang: str) -> Filter:
    pattern = contains(q)
    clauses: list[Filter] = [
        {"name": pattern},
        {"native": pattern},
        {"iso2": pattern},
        {"iso3": pattern},
    ]
    if wants_translation(lang, default_lang):
        clauses.append({f"translations.{lang}": pattern})
    return {"$or": clauses}


def region_search_filter(q: str, lang: Optional[str], default_lang: str) -> Filter:
    pattern = contains(q)
    clauses: list[Filter] = [{"name": pattern}]
    if wants_translation(lang, default_lang):
        clauses.append({f"translations.{lang}": pattern})
    return {"$or": clauses}


def name_search_filter(q: str) -> Filter:
    """States and cities only match on their own name."""
    return {"name": contains(q)}
