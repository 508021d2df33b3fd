"""Configuration management for the TinyLink service.

This module provides centralized configuration using Pydantic BaseSettings
with environment variable support and caching.

Flow Diagram — get_settings()
=============================
::
    ┌─────────────┐
    │  Call get_  │
    │  settings() │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Check cache │
    │ (lru_cache) │
    └──────┬──────┘
    HIT?   │
    ┌──────┴─────┐
    │ NO         │ YES
    ▼            ▼
┌─────────┐  ┌─────────┐
│ Create  │  │ Return  │
│ Settings│  │ cached  │
│ instance│  │ value   │
└─────────┘  └─────────┘

How to Use
===========
**Step 1 — Import**::
    from tinylink.config import get_settings

**Step 2 — Read values**::
    settings = get_settings()
    print(settings.BASE_URL, settings.CODE_MAX_ATTEMPTS)

**Step 3 — Override in tests**::
    settings = Settings(DATABASE_URL="sqlite+aiosqlite:///./test.db", CACHE_ENABLED=False)
    app = create_app(settings)

Key Behaviours
===============
- Settings are cached after first access.
- Environment variables (and a local ``.env`` file) override defaults.
- ``RESERVED_PATHS`` is read from the environment as a JSON list.
- The code length range is checked against the 6–8 character code format.

Classes:
    Settings:  Pydantic model for all configuration values.
"""

__all__ = ["Settings", "get_settings"]

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    APP_NAME: str = "tinylink"
    APP_ENV: str = "development"
    BASE_URL: str = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # PostgreSQL
    DATABASE_URL: str = "postgresql+asyncpg://tinylink:tinylink@db:5432/tinylink"
    DATABASE_ECHO: bool = False

    # Redirect cache
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_ENABLED: bool = True
    CACHE_TTL_SECONDS: int = 3600

    # Short code allocation
    CODE_MIN_LENGTH: int = 6
    CODE_MAX_LENGTH: int = 8
    CODE_MAX_ATTEMPTS: int = 10

    # Paths probed by browsers and crawlers that never name a link
    RESERVED_PATHS: list[str] = ["favicon.ico", "robots.txt"]

    METRICS_PATH: str = "/api/metrics"

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    @model_validator(mode="after")
    def check_code_lengths(self) -> "Settings":
        if not 6 <= self.CODE_MIN_LENGTH <= self.CODE_MAX_LENGTH <= 8:
            raise ValueError("CODE_MIN_LENGTH and CODE_MAX_LENGTH must satisfy 6 <= min <= max <= 8")
        if self.CODE_MAX_ATTEMPTS < 1:
            raise ValueError("CODE_MAX_ATTEMPTS must be at least 1")
        return self

    @property
    def short_url_base(self) -> str:
        return self.BASE_URL.rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()
