from pydantic import ConfigDict
from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    """
    Configuration settings for the field operations request client
    """
    # Service information
    SERVICE_NAME: str = "fieldops-client"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # API Configuration
    API_PREFIX: str = "/api/v1"

    # Edge function endpoint
    FUNCTIONS_BASE_URL: str = "https://qvppvstgconmzzjsryna.supabase.co/functions/v1"
    API_KEY: str = "your-anon-key-here"  # Should be overridden via environment variable

    # Origin that relative request URLs resolve against
    BASE_URL: str = "https://qvppvstgconmzzjsryna.supabase.co"

    # Request policy
    DEFAULT_RETRIES: int = 3
    DEFAULT_TIMEOUT_MS: int = 15000
    BACKOFF_SCHEDULE_MS: List[int] = [300, 900, 2000]
    REQUEST_ID_HEADER: str = "x-request-id"

    # Circuit breaker
    FAILURE_THRESHOLD: int = 5
    FAILURE_WINDOW_SECONDS: int = 60
    BREAKER_BACKEND: str = "memory"  # "memory" or "redis"

    # Redis Configuration
    REDIS_URL: str = "redis://localhost:6379/0"

    # Health checks
    HEALTH_CHECK_FUNCTIONS: List[str] = [
        "survey-lookup",
        "offer-lookup",
        "offer-respond",
        "partner-import",
        "send-offer",
        "create-user",
    ]

    # Monitoring
    LOG_LEVEL: str = "INFO"

    model_config = ConfigDict(
        env_prefix="FIELDOPS_",
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow"
    )

@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance
    """
    return Settings()

def validate_settings(settings: Settings) -> None:
    """
    Validate settings and their relationships
    """
    if settings.DEFAULT_TIMEOUT_MS < 1:
        raise ValueError("DEFAULT_TIMEOUT_MS must be positive")

    if settings.DEFAULT_RETRIES < 0:
        raise ValueError("DEFAULT_RETRIES cannot be negative")

    if not settings.BACKOFF_SCHEDULE_MS:
        raise ValueError("BACKOFF_SCHEDULE_MS cannot be empty")

    if any(delay < 0 for delay in settings.BACKOFF_SCHEDULE_MS):
        raise ValueError("BACKOFF_SCHEDULE_MS entries cannot be negative")

    if settings.FAILURE_THRESHOLD < 1:
        raise ValueError("FAILURE_THRESHOLD must be positive")

    if settings.FAILURE_WINDOW_SECONDS < 1:
        raise ValueError("FAILURE_WINDOW_SECONDS must be positive")

    if settings.BREAKER_BACKEND not in ("memory", "redis"):
        raise ValueError("BREAKER_BACKEND must be 'memory' or 'redis'")
