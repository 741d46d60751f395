"""Environment-driven configuration helpers for WagerLab."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PROVIDER_CHAINS: dict[str, list[str]] = {
    "NBA": ["balldontlie", "espn", "scoreroom"],
    "NCAAB": ["balldontlie", "espn", "scoreroom"],
    "WNBA": ["balldontlie", "espn", "scoreroom"],
    "WNCAAB": ["espn", "scoreroom"],
    "NFL": ["espn", "balldontlie", "scoreroom"],
    "NCAAF": ["espn", "balldontlie", "scoreroom"],
    "MLB": ["espn", "balldontlie", "scoreroom"],
    "NHL": ["espn", "scoreroom"],
    "MLS": ["espn", "scoreroom"],
    "UFC": ["espn"],
}


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or .env files."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: AnyUrl | str = Field(default="sqlite:///./wagerlab.db")

    balldontlie_api_key: str = Field(default="", validation_alias="BALLDONTLIE_API_KEY")
    score_room_api_key: str = Field(default="", validation_alias="SCORE_ROOM_API_KEY")
    score_room_api_host: str = Field(
        default="score-room.p.rapidapi.com", validation_alias="SCORE_ROOM_API_HOST"
    )
    odds_api_key: str = Field(default="", validation_alias="ODDS_API_KEY")
    wagerlab_api_key: str = Field(default="", validation_alias="WAGERLAB_API_KEY")

    slip_timezone: str = Field(default="America/New_York")

    request_timeout_seconds: float = Field(default=30.0, gt=0)
    provider_calls_per_minute: int = Field(default=60, ge=0)

    settlement_batch_size: int = Field(default=5, ge=1, le=50)
    settlement_batch_pause_seconds: float = Field(default=1.0, ge=0.0)
    clv_pause_seconds: float = Field(default=2.0, ge=0.0)

    live_cache_ttl_seconds: float = Field(default=30.0, ge=0.0)
    idle_cache_ttl_seconds: float = Field(default=300.0, ge=0.0)
    miss_cache_ttl_seconds: float = Field(default=60.0, ge=0.0)

    provider_chains: dict[str, list[str]] = Field(
        default_factory=lambda: {sport: list(chain) for sport, chain in DEFAULT_PROVIDER_CHAINS.items()}
    )

    settlement_interval_seconds: int = Field(default=300, ge=10)
    clv_interval_seconds: int = Field(default=300, ge=10)
    clv_force_window_minutes: int = Field(default=15, ge=0)
    clv_force_min_gap_seconds: int = Field(default=120, ge=0)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()  # type: ignore[call-arg]


def get_api_access_key() -> str:
    key = os.getenv("WAGERLAB_API_KEY") or get_settings().wagerlab_api_key
    if not key:
        raise RuntimeError(
            "WAGERLAB_API_KEY is not configured. Set it in your environment or deployment secrets."
        )
    return key
