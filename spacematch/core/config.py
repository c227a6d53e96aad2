from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from spacematch.core.constants import SEARCH_HISTORY_LIMIT as SEARCH_HISTORY_MAX
from spacematch.core.version import __version__


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    PORT: int = 8000
    APP_ENV: Literal["development", "production", "test"] = "production"
    APP_NAME: str = "SpaceMatch"

    # Stores
    STORE_BACKEND: Literal["memory", "redis"] = "memory"
    REDIS_URL: str = "redis://redis:6379/0"
    REDIS_MAX_CONNECTIONS: int = 20
    REDIS_KEY_PREFIX: str = "spacematch:"
    # Hosted listing table (PostgREST-style). Empty = in-memory listings.
    LISTING_STORE_URL: str = ""
    LISTING_STORE_API_KEY: str | None = None
    LISTING_STORE_TIMEOUT_SECONDS: float = 10.0

    # Reads feeding the scorers degrade to defaults after these timeouts
    PROFILE_FETCH_TIMEOUT_SECONDS: float = 3.0
    LISTING_FETCH_TIMEOUT_SECONDS: float = 5.0

    SEARCH_HISTORY_LIMIT: int = Field(default=SEARCH_HISTORY_MAX, ge=1, le=SEARCH_HISTORY_MAX)
    RECOMMENDATION_LIMIT: int = 10
    SCORING_CONCURRENCY: int = 16

    # Skip an auto-flag when an open auto-flag of the same type already exists
    AUTO_FLAG_DEDUPE: bool = True

    # AI
    ENABLE_AI_ENHANCEMENT: bool = False
    ENHANCEMENT_TIMEOUT_SECONDS: float = 4.0
    DEFAULT_GEMINI_MODEL: str = "gemma-3-27b-it"
    GEMINI_API_KEY: str | None = None


settings = Settings()

APP_VERSION = __version__
