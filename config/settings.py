"""Configuration management using pydantic-settings."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Library defaults loaded from environment variables (FETCHSTATE_*)."""

    # Cache settings
    cache_ttl_seconds: float = 300.0

    # Retry settings
    # Backoff curve: min(base * 2^attempt, max)
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    retry_max_delay_seconds: float = 30.0

    # Logging
    log_level: str = "INFO"

    class Config:
        env_prefix = "FETCHSTATE_"
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
