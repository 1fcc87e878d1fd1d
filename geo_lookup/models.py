"""
Pydantic models for the four location collections and API payloads.
These are pure data objects — no database coupling.

Stored documents often carry more than the fields declared here
(coordinates, currency, timezones...). Entity models allow extra fields so
those pass straight through to the caller.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


# ── Enums ──────────────────────────────────────────────────────────────

class SearchType(str, Enum):
    COUNTRIES = "countries"
    STATES = "states"
    CITIES = "cities"
    REGIONS = "regions"


# ── Entities ──────────────────────────────────────────────────────────

class Entity(BaseModel):
    model_config = {"extra": "allow"}

    id: int
    name: str


class Region(Entity):
    translations: Optional[dict[str, Optional[str]]] = None


class Country(Entity):
    region_id: Optional[int] = None
    iso2: Optional[str] = None
    iso3: Optional[str] = None
    native: Optional[str] = None
    translations: Optional[dict[str, Optional[str]]] = None


class State(Entity):
    country_id: Optional[int] = None


class City(Entity):
    country_id: Optional[int] = None
    state_id: Optional[int] = None


# ── API response models ───────────────────────────────────────────────

class SearchResults(BaseModel):
    """Per-category matches; categories not searched stay empty."""
    countries: list[Country] = Field(default_factory=list)
    states: list[State] = Field(default_factory=list)
    cities: list[City] = Field(default_factory=list)
    regions: list[Region] = Field(default_factory=list)


class StatusResponse(BaseModel):
    status: str = "ok"
    message: str = "Geographic API is running"
    timestamp: datetime


class ErrorResponse(BaseModel):
    error: str
