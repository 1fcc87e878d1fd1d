"""
Central configuration loaded from environment variables with sensible defaults.
A local .env file is honoured; the connection string never lives in code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache

from dotenv import load_dotenv

# Must run before the dataclass defaults below are evaluated.
load_dotenv()


def _csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class MongoConfig:
    url: str = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    database: str = os.getenv("MONGO_DATABASE", "country")
    # Server selection timeout; a dead store fails startup instead of hanging
    timeout_ms: int = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))


@dataclass(frozen=True)
class APIConfig:
    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    # Language whose names are stored in the plain `name` field
    default_lang: str = os.getenv("DEFAULT_LANG", "en")
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "100"))
    default_search_limit: int = int(os.getenv("DEFAULT_SEARCH_LIMIT", "50"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "1000"))
    cors_origins: tuple[str, ...] = _csv(os.getenv("CORS_ORIGINS", "*"))


@dataclass(frozen=True)
class Settings:
    mongo: MongoConfig = field(default_factory=MongoConfig)
    api: APIConfig = field(default_factory=APIConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    env: str = os.getenv("APP_ENV", "development")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
