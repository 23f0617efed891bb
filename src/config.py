from functools import lru_cache
from typing import Literal

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class BadgeTierSetting(BaseModel):
    """One step of the completion badge table."""

    min_percentage: float
    badge_type: str
    name: str
    icon: str = ""


DEFAULT_BADGE_TIERS = [
    BadgeTierSetting(
        min_percentage=100, badge_type="perfect_completion", name="Superhuman", icon="⭐"
    ),
    BadgeTierSetting(
        min_percentage=90, badge_type="excellent_completion", name="Iron Runner", icon="💪"
    ),
    BadgeTierSetting(
        min_percentage=66.67,
        badge_type="good_completion",
        name="Persistent Warrior",
        icon="🏆",
    ),
    BadgeTierSetting(
        min_percentage=50, badge_type="basic_completion", name="Starter", icon="🎯"
    ),
]


class Settings(BaseSettings):
    # APP
    APP_NAME: str = "RunClub Events"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # DB
    DATABASE_URL: str
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # CORS
    CORS_ORIGINS: list[str] = ["*"]

    # Security
    ADMIN_API_KEY: str

    # Scoring
    ALLOWED_ACTIVITY_TYPES: list[str] = ["Run", "Walk"]
    DEFAULT_CURRENCY: str = "VND"
    # Ordered table, read as a step function over completion percentage
    BADGE_TIERS: list[BadgeTierSetting] = DEFAULT_BADGE_TIERS

    # Ingestion throttling (per user, sliding window)
    INGEST_RATE_LIMIT: int = 90
    INGEST_RATE_WINDOW_SECONDS: int = 900

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached settings only loads once"""
    return Settings()
