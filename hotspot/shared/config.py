import os
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
import logging


def _get_env_file() -> str:
    """Determine which environment file to load based on the current environment."""
    environment = os.environ.get("ENVIRONMENT", "development")

    # Priority order for env files:
    # 1. .env.{environment} (e.g., .env.production)
    # 2. .env.local (local overrides)
    # 3. .env (default)
    possible_env_files = [
        f".env.{environment}",
        ".env.local",
        ".env"
    ]

    for env_file in possible_env_files:
        if os.path.exists(env_file):
            logging.info(f"Loading environment from: {env_file}")
            return env_file

    return ".env"  # Fallback, won't be loaded if doesn't exist


class Settings(BaseSettings):
    ENVIRONMENT: str = Field(
        default="development",
        description="Application environment"
    )

    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    LOG_FORMAT: str = Field(
        default="console",
        description="Log renderer: 'json' or 'console'"
    )

    # Outbound HTTP settings
    USER_AGENT: str = Field(
        default=(
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
        ),
        description="Browser User-Agent sent with every request"
    )

    ACCEPT_LANGUAGE: str = Field(
        default="zh-CN,zh;q=0.9,en-US;q=0.8,en;q=0.7",
        description="Accept-Language header sent with every request"
    )

    FETCH_TIMEOUT: float = Field(
        default=10.0,
        description="Default timeout for a single HTTP request in seconds"
    )

    FETCH_MAX_RETRIES: int = Field(
        default=3,
        description="Default number of retries per fetch target"
    )

    FETCH_RETRY_DELAY: float = Field(
        default=1.0,
        description="Linear retry delay in seconds (multiplied by attempt number)"
    )

    LIST_FETCH_TIMEOUT: float = Field(
        default=20.0,
        description="Timeout for fetching a listing page in seconds"
    )

    ROBOTS_CHECK_ENABLED: bool = Field(
        default=True,
        description="Honour robots.txt before fetching HTML pages"
    )

    ROBOTS_MAX_CRAWL_DELAY: float = Field(
        default=10.0,
        description="Upper bound applied to robots.txt crawl-delay in seconds"
    )

    # Proxy fallback
    PROXY_TYPE: str = Field(
        default="none",
        description="Proxy provider used as fallback: none, scraperapi, brightdata, custom, jina"
    )

    PROXY_API_KEY: Optional[str] = Field(
        default=None,
        description="API key for scraperapi / brightdata proxies"
    )

    PROXY_CUSTOM_URL: Optional[str] = Field(
        default=None,
        description="Custom proxy template containing {url} or {encodedUrl}"
    )

    # Content verification
    CONTENT_CHECK_TIMEOUT: float = Field(
        default=5.0,
        description="Timeout for fetching a candidate page in seconds"
    )

    CONTENT_CHECK_RETRIES: int = Field(
        default=1,
        description="Retries for a candidate page fetch"
    )

    CONTENT_CHECK_CONCURRENCY: int = Field(
        default=5,
        description="Number of candidate pages verified concurrently per batch"
    )

    MIN_CONTENT_LENGTH: int = Field(
        default=80,
        description="Minimum characters of text for a page to count as having content"
    )

    CONTENT_SNIPPET_LENGTH: int = Field(
        default=800,
        description="Maximum characters kept as content snippet"
    )

    # Selector fallback discovery
    FALLBACK_MIN_VALID_ITEMS: int = Field(
        default=3,
        description="Minimum valid elements a fallback selector must match"
    )

    FALLBACK_MIN_TEXT_LENGTH: int = Field(
        default=10,
        description="Minimum text length for a fallback element to count as valid"
    )

    FALLBACK_TOP_CLASSES: int = Field(
        default=10,
        description="Number of most frequent class names tried during discovery"
    )

    NAV_TITLE_MAX_LENGTH: int = Field(
        default=5,
        description="Titles up to this length are checked against navigation keywords"
    )

    # Platform orchestration
    CRAWL_MAX_RETRIES: int = Field(
        default=2,
        description="Retries per platform after the first attempt"
    )

    CRAWL_RETRY_BASE_DELAY: float = Field(
        default=2.0,
        description="Base delay in seconds for platform retry backoff"
    )

    CRAWL_RETRY_MULTIPLIER: float = Field(
        default=2.0,
        description="Multiplier for platform retry backoff"
    )

    CRAWL_REQUEST_INTERVAL: float = Field(
        default=1.0,
        description="Delay in seconds between two platforms"
    )

    REALTIME_MATCHING_ENABLED: bool = Field(
        default=False,
        description="Match and weigh each fetched item immediately"
    )

    KEYWORD_CACHE_TTL: float = Field(
        default=60.0,
        description="Seconds keyword groups are cached in memory"
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"LOG_LEVEL must be one of {valid_levels}")
        return v.upper()

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v.lower() not in ("json", "console"):
            raise ValueError("LOG_FORMAT must be 'json' or 'console'")
        return v.lower()

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        valid_envs = ["development", "testing", "staging", "production"]
        if v.lower() not in valid_envs:
            raise ValueError(f"ENVIRONMENT must be one of {valid_envs}")
        return v.lower()

    @field_validator("PROXY_TYPE")
    @classmethod
    def validate_proxy_type(cls, v: str) -> str:
        valid_types = ["none", "scraperapi", "brightdata", "custom", "jina"]
        if v.lower() not in valid_types:
            raise ValueError(f"PROXY_TYPE must be one of {valid_types}")
        return v.lower()

    @field_validator(
        "FETCH_TIMEOUT",
        "LIST_FETCH_TIMEOUT",
        "CONTENT_CHECK_TIMEOUT"
    )
    @classmethod
    def validate_timeout(cls, v: float, info) -> float:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        if v > 300:
            raise ValueError(f"{info.field_name} must not exceed 300 seconds")
        return v

    @field_validator("FETCH_MAX_RETRIES", "CONTENT_CHECK_RETRIES", "CRAWL_MAX_RETRIES")
    @classmethod
    def validate_retries(cls, v: int, info) -> int:
        if v < 0:
            raise ValueError(f"{info.field_name} must be non-negative")
        if v > 10:
            raise ValueError(f"{info.field_name} must not exceed 10")
        return v

    @field_validator("CONTENT_CHECK_CONCURRENCY")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("CONTENT_CHECK_CONCURRENCY must be positive")
        if v > 50:
            raise ValueError("CONTENT_CHECK_CONCURRENCY must not exceed 50")
        return v

    @field_validator("CRAWL_RETRY_MULTIPLIER")
    @classmethod
    def validate_retry_multiplier(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError("CRAWL_RETRY_MULTIPLIER must be >= 1.0")
        return v

    @field_validator(
        "FETCH_RETRY_DELAY",
        "CRAWL_RETRY_BASE_DELAY",
        "CRAWL_REQUEST_INTERVAL",
        "KEYWORD_CACHE_TTL",
        "ROBOTS_MAX_CRAWL_DELAY"
    )
    @classmethod
    def validate_non_negative_delay(cls, v: float, info) -> float:
        if v < 0:
            raise ValueError(f"{info.field_name} must be non-negative")
        return v

    @field_validator(
        "MIN_CONTENT_LENGTH",
        "CONTENT_SNIPPET_LENGTH",
        "FALLBACK_MIN_VALID_ITEMS",
        "FALLBACK_MIN_TEXT_LENGTH",
        "FALLBACK_TOP_CLASSES",
        "NAV_TITLE_MAX_LENGTH"
    )
    @classmethod
    def validate_positive_count(cls, v: int, info) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive")
        return v

    model_config = SettingsConfigDict(
        env_file=_get_env_file(),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
