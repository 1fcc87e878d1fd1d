"""
Document store access.
Uses pymongo's asyncio client; one client is opened at startup and shared
by every request for the life of the process.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

from pymongo import ASCENDING, AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from geo_lookup.config import Settings, get_settings
from geo_lookup.errors import StoreUnavailableError
from geo_lookup.filters import Filter, Page

logger = logging.getLogger(__name__)

REGIONS = "regions"
COUNTRIES = "countries"
STATES = "states"
CITIES = "cities"

COLLECTIONS = (REGIONS, COUNTRIES, STATES, CITIES)

# The store's internal identity is never exposed; callers use numeric `id`.
_PROJECTION = {"_id": 0}

# Fields every route filters on exactly
_INDEXES: dict[str, tuple[str, ...]] = {
    REGIONS: ("id",),
    COUNTRIES: ("id", "region_id", "iso2"),
    STATES: ("id", "country_id"),
    CITIES: ("id", "country_id", "state_id"),
}


class GeoStore:
    """Thin read-only facade over the four location collections."""

    def __init__(self, database: AsyncDatabase):
        self._db = database

    @property
    def name(self) -> str:
        return self._db.name

    async def find(
        self,
        collection: str,
        query: Filter,
        page: Optional[Page] = None,
    ) -> list[dict[str, Any]]:
        """
        Run a filtered find in the collection's natural order.
        Without a page every match is returned.
        """
        cursor = self._db[collection].find(query, _PROJECTION)
        if page is not None:
            cursor = cursor.skip(page.offset).limit(page.limit)
        return await cursor.to_list()

    async def find_one(self, collection: str, query: Filter) -> Optional[dict[str, Any]]:
        return await self._db[collection].find_one(query, _PROJECTION)

    async def ping(self) -> None:
        await self._db.client.admin.command("ping")

    async def ensure_indexes(self) -> dict[str, list[str]]:
        """Create ascending indexes on the lookup fields (idempotent)."""
        created: dict[str, list[str]] = {}
        for collection, fields in _INDEXES.items():
            names = []
            for field in fields:
                names.append(await self._db[collection].create_index([(field, ASCENDING)]))
            created[collection] = names
            logger.info("Indexes ensured on %s: %s", collection, ", ".join(names))
        return created


@asynccontextmanager
async def open_store(settings: Optional[Settings] = None) -> AsyncIterator[GeoStore]:
    """
    Connect, verify the deployment answers a ping, yield the store, close.
    Raises StoreUnavailableError when the ping fails.
    """
    settings = settings or get_settings()
    client: AsyncMongoClient = AsyncMongoClient(
        settings.mongo.url,
        serverSelectionTimeoutMS=settings.mongo.timeout_ms,
    )
    try:
        store = GeoStore(client[settings.mongo.database])
        try:
            await store.ping()
        except PyMongoError as e:
            raise StoreUnavailableError(f"MongoDB ping failed: {e}") from e
        logger.info("Connected to MongoDB, using %r database", store.name)
        yield store
    finally:
        await client.close()
        logger.info("MongoDB client closed")
