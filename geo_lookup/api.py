"""
FastAPI service exposing hierarchical location data.

Endpoints:
  GET /                                   - Liveness + timestamp
  GET /regions[/{id}[/countries]]         - Regions and their countries
  GET /countries[/code/{iso2}|/{id}]      - Countries, by name/ISO2/id
  GET /countries/{id}/states|cities       - Children of a country
  GET /states[/{id}[/cities]]             - States and their cities
  GET /cities[/{id}]                      - Cities
  GET /search                             - Substring search across all four
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from geo_lookup import filters
from geo_lookup.config import APIConfig, get_settings
from geo_lookup.db import CITIES, COUNTRIES, REGIONS, STATES, GeoStore, open_store
from geo_lookup.errors import (
    BadRequestError,
    GeoLookupError,
    NotFoundError,
    StoreUnavailableError,
    lookup_failure,
)
from geo_lookup.filters import Page
from geo_lookup.models import (
    City,
    Country,
    Entity,
    ErrorResponse,
    Region,
    SearchResults,
    SearchType,
    State,
    StatusResponse,
)
from geo_lookup.translation import localize, localize_all

logger = logging.getLogger(__name__)


# ── Lifespan ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup: connect to MongoDB (fatal on failure). Shutdown: close client."""
    logger.info("Starting up API server...")
    try:
        async with open_store() as store:
            app.state.store = store
            _log_endpoints(app)
            yield
    except StoreUnavailableError as e:
        logger.critical("Refusing to start without a data store: %s", e)
        raise
    logger.info("API server shut down.")


def _log_endpoints(app: FastAPI) -> None:
    logger.info("Available endpoints:")
    for route in app.routes:
        methods = getattr(route, "methods", None)
        if methods and "GET" in methods and route.include_in_schema:
            logger.info("  GET %s", route.path)


# ── App ───────────────────────────────────────────────────────────────

app = FastAPI(
    title="Geographic API",
    description="Read-only lookup of regions, countries, states and cities",
    version="1.0.0",
    lifespan=lifespan,
    responses={500: {"model": ErrorResponse}},
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().api.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Dependencies ──────────────────────────────────────────────────────

def get_store(request: Request) -> GeoStore:
    return request.app.state.store


def get_api_settings() -> APIConfig:
    return get_settings().api


def pagination(
    limit: Optional[int] = Query(None, ge=1, description="Max results (default 100)"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    settings: APIConfig = Depends(get_api_settings),
) -> Page:
    if limit is None:
        limit = settings.default_page_size
    return Page(limit=min(limit, settings.max_page_size), offset=offset)


# ── Error handlers ────────────────────────────────────────────────────

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(GeoLookupError)
async def lookup_error_handler(request: Request, exc: GeoLookupError):
    return _error(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        return _error(404, "Route not found")
    return _error(exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    param = first.get("loc", ["request"])[-1]
    return _error(400, f"Invalid value for '{param}': {first.get('msg', 'invalid')}")


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return _error(500, "Something went wrong!")


# ══════════════════════════════════════════════════════════════════════
# ENDPOINTS
# ══════════════════════════════════════════════════════════════════════

# Entity routes drop unset fields so stored documents come back unchanged,
# without nulls for optional fields the document never had.
_ENTITY_ROUTE = {"response_model_exclude_unset": True}


def _lang_query():
    return Query(None, pattern=filters.LANG_PATTERN, description="Language code for names, e.g. fr or pt-BR")


def _many(model: type[Entity], docs: list[dict]) -> list[Entity]:
    """Validate inside the route so a malformed document gets the route's error."""
    return [model.model_validate(d) for d in docs]


@app.get("/", response_model=StatusResponse)
async def status():
    """Liveness check with the server's current time."""
    return StatusResponse(timestamp=datetime.now(timezone.utc))


# ── Regions ───────────────────────────────────────────────────────────

@app.get("/regions", response_model=list[Region], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch regions")
async def list_regions(
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """All regions, names translated when `lang` is given."""
    regions = await store.find(REGIONS, {})
    return _many(Region, localize_all(regions, lang, settings.default_lang))


@app.get("/regions/{continent_id}", response_model=Region, responses={404: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch region details")
async def get_region(
    continent_id: str,
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """Single region by numeric id."""
    region_id = filters.parse_id(continent_id)
    region = None
    if region_id is not None:
        region = await store.find_one(REGIONS, filters.by_id(region_id))
    if region is None:
        raise NotFoundError("Region not found")
    return Region.model_validate(localize(region, lang, settings.default_lang))


@app.get("/regions/{continent_id}/countries", response_model=list[Country], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch countries in region")
async def list_region_countries(
    continent_id: str,
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """Countries whose region_id is the given region."""
    region_id = filters.parse_id(continent_id)
    if region_id is None:
        return []
    countries = await store.find(COUNTRIES, filters.by_parent("region_id", region_id))
    return _many(Country, localize_all(countries, lang, settings.default_lang))


# ── Countries ─────────────────────────────────────────────────────────

@app.get("/countries", response_model=list[Country], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch countries")
async def list_countries(
    name: Optional[str] = Query(None, description="Substring of name, native or translated name"),
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """
    All countries, optionally filtered by a name substring.
    With a non-default `lang` the translated name is matched too.
    """
    query = filters.country_name_filter(name, lang, settings.default_lang)
    countries = await store.find(COUNTRIES, query)
    return _many(Country, localize_all(countries, lang, settings.default_lang))


@app.get("/countries/code/{iso2}", response_model=Country, responses={404: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch country")
async def get_country_by_code(
    iso2: str,
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """Single country by ISO 3166-1 alpha-2 code, any case."""
    country = await store.find_one(COUNTRIES, filters.by_iso2(iso2))
    if country is None:
        raise NotFoundError("Country not found")
    return Country.model_validate(localize(country, lang, settings.default_lang))


@app.get("/countries/{country_id}", response_model=Country, responses={404: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch country details")
async def get_country(
    country_id: str,
    lang: Optional[str] = _lang_query(),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """Single country by numeric id."""
    parsed = filters.parse_id(country_id)
    country = None
    if parsed is not None:
        country = await store.find_one(COUNTRIES, filters.by_id(parsed))
    if country is None:
        raise NotFoundError("Country not found")
    return Country.model_validate(localize(country, lang, settings.default_lang))


@app.get("/countries/{country_id}/states", response_model=list[State], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch states in country")
async def list_country_states(
    country_id: str,
    store: GeoStore = Depends(get_store),
):
    """Every state of a country, unpaginated."""
    parsed = filters.parse_id(country_id)
    if parsed is None:
        return []
    return _many(State, await store.find(STATES, filters.by_parent("country_id", parsed)))


@app.get("/countries/{country_id}/cities", response_model=list[City], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch cities in country")
async def list_country_cities(
    country_id: str,
    page: Page = Depends(pagination),
    store: GeoStore = Depends(get_store),
):
    """Cities of a country, paginated with limit/offset."""
    parsed = filters.parse_id(country_id)
    if parsed is None:
        return []
    return _many(City, await store.find(CITIES, filters.by_parent("country_id", parsed), page))


# ── States ────────────────────────────────────────────────────────────

@app.get("/states", response_model=list[State], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch states")
async def list_states(
    country_id: Optional[int] = Query(None),
    page: Page = Depends(pagination),
    store: GeoStore = Depends(get_store),
):
    """States, optionally restricted to one country."""
    return _many(State, await store.find(STATES, filters.state_list_filter(country_id), page))


@app.get("/states/{state_id}", response_model=State, responses={404: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch state details")
async def get_state(
    state_id: str,
    store: GeoStore = Depends(get_store),
):
    """Single state by numeric id."""
    parsed = filters.parse_id(state_id)
    state = None
    if parsed is not None:
        state = await store.find_one(STATES, filters.by_id(parsed))
    if state is None:
        raise NotFoundError("State not found")
    return State.model_validate(state)


@app.get("/states/{state_id}/cities", response_model=list[City], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch cities in state")
async def list_state_cities(
    state_id: str,
    page: Page = Depends(pagination),
    store: GeoStore = Depends(get_store),
):
    """Cities of a state, paginated with limit/offset."""
    parsed = filters.parse_id(state_id)
    if parsed is None:
        return []
    return _many(City, await store.find(CITIES, filters.by_parent("state_id", parsed), page))


# ── Cities ────────────────────────────────────────────────────────────

@app.get("/cities", response_model=list[City], **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch cities")
async def list_cities(
    name: Optional[str] = Query(None, description="Case-insensitive substring of the city name"),
    country_id: Optional[int] = Query(None),
    state_id: Optional[int] = Query(None),
    page: Page = Depends(pagination),
    store: GeoStore = Depends(get_store),
):
    """Cities filtered by any combination of name, country and state."""
    query = filters.city_list_filter(name, country_id, state_id)
    return _many(City, await store.find(CITIES, query, page))


@app.get("/cities/{city_id}", response_model=City, responses={404: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Failed to fetch city details")
async def get_city(
    city_id: str,
    store: GeoStore = Depends(get_store),
):
    """Single city by numeric id."""
    parsed = filters.parse_id(city_id)
    city = None
    if parsed is not None:
        city = await store.find_one(CITIES, filters.by_id(parsed))
    if city is None:
        raise NotFoundError("City not found")
    return City.model_validate(city)


# ── Search ────────────────────────────────────────────────────────────

@app.get("/search", response_model=SearchResults, responses={400: {"model": ErrorResponse}}, **_ENTITY_ROUTE)
@lookup_failure("Search failed")
async def search(
    q: Optional[str] = Query(None, max_length=200, description="Case-insensitive substring"),
    type_: Optional[SearchType] = Query(None, alias="type", description="Restrict to one category"),
    lang: Optional[str] = _lang_query(),
    limit: Optional[int] = Query(None, ge=1, description="Max results per category (default 50)"),
    store: GeoStore = Depends(get_store),
    settings: APIConfig = Depends(get_api_settings),
):
    """
    Substring search over countries (name, native, iso2, iso3, translated
    name), states and cities (name) and regions (name, translated name).
    Each category is capped independently; categories not searched come
    back as empty lists.
    """
    if not q:
        raise BadRequestError("Search query (q) parameter is required")

    page = Page(limit=min(limit or settings.default_search_limit, settings.max_page_size))
    default_lang = settings.default_lang
    countries: list[dict] = []
    states: list[dict] = []
    cities: list[dict] = []
    regions: list[dict] = []

    if type_ in (None, SearchType.COUNTRIES):
        found = await store.find(COUNTRIES, filters.country_search_filter(q, lang, default_lang), page)
        countries = localize_all(found, lang, default_lang)

    if type_ in (None, SearchType.STATES):
        states = await store.find(STATES, filters.name_search_filter(q), page)

    if type_ in (None, SearchType.CITIES):
        cities = await store.find(CITIES, filters.name_search_filter(q), page)

    if type_ in (None, SearchType.REGIONS):
        found = await store.find(REGIONS, filters.region_search_filter(q, lang, default_lang), page)
        regions = localize_all(found, lang, default_lang)

    # Every category is passed explicitly so empty ones survive exclude_unset
    return SearchResults(
        countries=_many(Country, countries),
        states=_many(State, states),
        cities=_many(City, cities),
        regions=_many(Region, regions),
    )
