"""
Application configuration using pydantic-settings.
All config is loaded from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Community Event Scheduler"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Key-value backend: "redis" or "memory"
    KV_BACKEND: str = "redis"
    REDIS_URL: str = "redis://localhost:6379/0"

    # Concurrency control: "optimistic" (version stamp) or "locked" (per-key lock)
    WRITE_STRATEGY: str = "optimistic"
    MAX_RETRY_ATTEMPTS: int = 3

    # Upper bound for every identity / backend call, in seconds
    EXTERNAL_CALL_TIMEOUT: float = 5.0

    # Sessions
    PENDING_REQUEST_LIMIT: int = 16  # 0 drops requests received while loading
    DELETE_ALLOWS_MODERATOR: bool = True

    # Identity
    DEFAULT_COMMUNITY: str = "community"
    MODERATORS: dict[str, list[str]] = {}  # community -> usernames, JSON in env

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
    }


@lru_cache()
def get_settings() -> Settings:
    return Settings()
