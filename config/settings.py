"""
Voice Load Configuration

Tuning knobs for matching and the confirm flow, alias persistence and
logging. Values come from the environment or a .env file in the working
directory.

Usage:
    from config.settings import settings

    print(settings.VOICE_CONFIRM_THRESHOLD)
    print(settings.DEBUG)
"""

from pydantic_settings import BaseSettings
from pydantic import Field, ConfigDict
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Engine settings. Every field can be set by an environment variable of the
    same name (case-insensitive).
    """

    # ==========================================================================
    # Application Settings
    # ==========================================================================
    DEBUG: bool = Field(
        default=False,
        description="Enable debug mode with verbose logging"
    )
    APP_NAME: str = Field(
        default="RuralMail Voice Load",
        description="Application name"
    )
    APP_VERSION: str = Field(
        default="1.0.0",
        description="Application version"
    )
    LOG_LEVEL: Optional[str] = Field(
        default=None,
        description="Log level override (defaults to DEBUG/INFO from DEBUG flag)"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit structured JSON logs instead of colored console lines"
    )

    # ==========================================================================
    # Alias Persistence
    # ==========================================================================
    REDIS_URL: Optional[str] = Field(
        default=None,
        description="Redis connection URL for learned alias persistence"
    )
    REDIS_TIMEOUT_SECONDS: float = Field(
        default=5.0,
        description="Connect and socket timeout for the Redis client"
    )
    ALIAS_STORE_PATH: Optional[str] = Field(
        default=None,
        description="JSON file used for alias persistence when Redis is not configured"
    )
    ALIAS_STORAGE_KEY: str = Field(
        default="route-brain-aliases",
        description="Storage key for learned aliases (distinct from route/package/settings keys)"
    )

    # ==========================================================================
    # Voice Load Tuning
    # ==========================================================================
    VOICE_CONFIRM_THRESHOLD: float = Field(
        default=0.85,
        description="Confidence above which a match goes straight to the confirm countdown"
    )
    VOICE_CANDIDATE_MARGIN: float = Field(
        default=0.10,
        description="Auto-confirm only when the best match leads the runner-up by more than this"
    )
    VOICE_COUNTDOWN_SECONDS: float = Field(
        default=3.0,
        description="Cancellable countdown before a confirmed match is committed"
    )
    VOICE_SUCCESS_RESET_SECONDS: float = Field(
        default=1.2,
        description="Delay before returning to listening after a commit"
    )
    VOICE_ERROR_RESET_SECONDS: float = Field(
        default=1.5,
        description="Delay before returning to listening after an error"
    )
    FUZZY_MATCH_CUTOFF: float = Field(
        default=0.6,
        description="Minimum similarity for a stop to count as a fuzzy match"
    )

    # ==========================================================================
    # Package Store
    # ==========================================================================
    PACKAGE_UNDO_WINDOW_SECONDS: float = Field(
        default=10.0,
        description="How long a deleted package can be restored"
    )

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )


@lru_cache()
def get_settings() -> Settings:
    """Settings are read from the environment once per process."""
    return Settings()


# Shared instance
settings = get_settings()
