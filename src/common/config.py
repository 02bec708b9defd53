"""Configuration management for the subtitle translator."""

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/133.0.0.0 Safari/537.36"
)


def _default_credential_store_path() -> str:
    return str(Path.home() / ".config" / "trxsrt" / "config.json")


class Settings(BaseSettings):
    """Application settings loaded from TRXSRT_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRXSRT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO")

    # Dispatch
    concurrency: int = Field(
        default=10, description="Maximum concurrent translation requests"
    )
    language_delay: float = Field(
        default=0.5, description="Pause in seconds between target languages"
    )
    request_timeout: float = Field(default=30.0)

    # Retry Configuration
    retry_max_retries: int = Field(
        default=3
    )  # Maximum number of retry attempts after initial try
    retry_initial_delay: float = Field(
        default=2.0
    )  # Initial delay in seconds before first retry
    retry_max_delay: float = Field(default=60.0)  # Backoff cap in seconds
    retry_exponential_base: int = Field(default=2)
    circuit_breaker_threshold: int = Field(
        default=100
    )  # Consecutive failures (across all lines) that halt the run

    # Backends
    gtx_url: str = Field(
        default="https://translate.googleapis.com/translate_a/single"
    )
    deeplx_url: str = Field(default="https://www2.deepl.com/jsonrpc")
    user_agent: str = Field(default=DEFAULT_USER_AGENT)

    # Saved CAPTCHA exemption cookie
    credential_store_path: str = Field(default_factory=_default_credential_store_path)

    @field_validator("concurrency", "circuit_breaker_threshold")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """
        Reject zero or negative counts.

        Args:
            v: Configured value

        Returns:
            The value unchanged
        """
        if v < 1:
            raise ValueError(f"must be a positive number, got {v}")
        return v

    @field_validator("retry_max_retries")
    @classmethod
    def validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError(f"must not be negative, got {v}")
        return v


# Global settings instance
settings = Settings()
