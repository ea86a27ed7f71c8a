import math

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_FORMATS = ("text", "structured", "json")


class Settings(BaseSettings):
    """Default parameters for the cache and rate limiting primitives.

    All settings can be configured via RATECACHE_* environment variables
    or a .env file. Explicit constructor arguments on the primitives always
    take precedence; these values are only read by the from_settings()
    factories.
    """

    # LRU cache settings
    cache_capacity: int = 1024

    # Token bucket settings
    bucket_capacity: float = 10.0  # Burst size in tokens
    bucket_refill_rate: float = 5.0  # Tokens per second

    # Keyed rate limiter settings
    limiter_max_keys: int = 10000  # Buckets tracked before LRU eviction

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    @field_validator("cache_capacity", "limiter_max_keys")
    @classmethod
    def validate_size_positive(cls, v: int) -> int:
        """Validate size values are at least 1."""
        if v < 1:
            raise ValueError("size values must be at least 1")
        return v

    @field_validator("bucket_capacity", "bucket_refill_rate")
    @classmethod
    def validate_bucket_positive(cls, v: float) -> float:
        """Validate bucket values are finite and positive."""
        if not math.isfinite(v) or v <= 0:
            raise ValueError("bucket values must be finite and positive")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _LOG_FORMATS:
            raise ValueError(f"log_format must be one of {', '.join(_LOG_FORMATS)}")
        return v

    model_config = SettingsConfigDict(
        env_prefix="RATECACHE_", env_file=".env", extra="ignore"
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the shared settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset the shared settings instance.

    This is primarily useful for testing.
    """
    global _settings
    _settings = None
