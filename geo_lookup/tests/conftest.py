"""
Shared fixtures: an in-memory stand-in for GeoStore plus a TestClient wired
to it. No MongoDB required.
"""

from __future__ import annotations

import copy
import re
from typing import Any, Optional

import pytest
from fastapi.testclient import TestClient

from geo_lookup.api import app, get_store
from geo_lookup.filters import Page


REGIONS = [
    {"id": 1, "name": "Africa", "translations": {"fr": "Afrique", "de": "Afrika"}},
    {"id": 2, "name": "Europe", "translations": {"fr": "Europe", "de": "Europa"}},
    {"id": 3, "name": "Americas", "translations": {"fr": "Amériques"}},
]

COUNTRIES = [
    {"id": 233, "region_id": 3, "iso2": "US", "iso3": "USA", "name": "United States",
     "native": "United States", "translations": {"fr": "États-Unis", "de": "Vereinigte Staaten"},
     "capital": "Washington"},
    {"id": 75, "region_id": 2, "iso2": "FR", "iso3": "FRA", "name": "France",
     "native": "France", "translations": {"de": "Frankreich"}},
    {"id": 82, "region_id": 2, "iso2": "DE", "iso3": "DEU", "name": "Germany",
     "native": "Deutschland", "translations": {"fr": "Allemagne", "de": "Deutschland"}},
    {"id": 161, "region_id": 1, "iso2": "NG", "iso3": "NGA", "name": "Nigeria",
     "native": "Nigeria", "translations": {"fr": "Nigéria"}},
]

STATES = [
    {"id": 1416, "country_id": 233, "name": "California"},
    {"id": 1407, "country_id": 233, "name": "Texas"},
    {"id": 4796, "country_id": 75, "name": "Île-de-France"},
    {"id": 306, "country_id": 161, "name": "Lagos"},
]

CITIES = [
    {"id": 1, "country_id": 233, "state_id": 1416, "name": "Los Angeles", "latitude": "34.05"},
    {"id": 2, "country_id": 233, "state_id": 1416, "name": "San Francisco"},
    {"id": 3, "country_id": 233, "state_id": 1416, "name": "San Diego"},
    {"id": 4, "country_id": 233, "state_id": 1407, "name": "Houston"},
    {"id": 5, "country_id": 75, "state_id": 4796, "name": "Paris"},
    {"id": 6, "country_id": 161, "state_id": 306, "name": "Lagos"},
    {"id": 7, "country_id": 233, "state_id": 1407, "name": "Austin"},
]


def _lookup(doc: dict, dotted: str) -> Any:
    value: Any = doc
    for part in dotted.split("."):
        if not isinstance(value, dict) or part not in value:
            return None
        value = value[part]
    return value


def _matches(doc: dict, query: dict) -> bool:
    """Interpret the filter subset the service emits: equality, $or, $regex."""
    for key, expected in query.items():
        if key == "$or":
            if not any(_matches(doc, clause) for clause in expected):
                return False
            continue
        actual = _lookup(doc, key)
        if isinstance(expected, dict) and "$regex" in expected:
            flags = re.IGNORECASE if "i" in expected.get("$options", "") else 0
            if not isinstance(actual, str) or not re.search(expected["$regex"], actual, flags):
                return False
        elif actual != expected:
            return False
    return True


class FakeStore:
    def __init__(self, data: Optional[dict[str, list[dict]]] = None):
        self.data = data if data is not None else {
            "regions": REGIONS,
            "countries": COUNTRIES,
            "states": STATES,
            "cities": CITIES,
        }
        self.calls: list[tuple[str, dict, Optional[Page]]] = []

    async def find(self, collection: str, query: dict, page: Optional[Page] = None) -> list[dict]:
        self.calls.append((collection, query, page))
        rows = [copy.deepcopy(d) for d in self.data[collection] if _matches(d, query)]
        if page is not None:
            rows = rows[page.offset:page.offset + page.limit]
        return rows

    async def find_one(self, collection: str, query: dict) -> Optional[dict]:
        self.calls.append((collection, query, None))
        for doc in self.data[collection]:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None


class BrokenStore:
    async def find(self, *args, **kwargs):
        raise RuntimeError("connection reset by peer")

    async def find_one(self, *args, **kwargs):
        raise RuntimeError("connection reset by peer")


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def broken_client():
    app.dependency_overrides[get_store] = lambda: BrokenStore()
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def client_for():
    """Build a client over custom collections; missing collections are empty."""

    def build(raise_server_exceptions: bool = True, **collections: list[dict]) -> TestClient:
        data = {name: collections.get(name, []) for name in ("regions", "countries", "states", "cities")}
        fake = FakeStore(data)
        app.dependency_overrides[get_store] = lambda: fake
        return TestClient(app, raise_server_exceptions=raise_server_exceptions)

    yield build
    app.dependency_overrides.clear()
