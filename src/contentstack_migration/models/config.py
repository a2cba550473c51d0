"""Configuration models for the Contentstack client.

Values can be passed explicitly or read from ``CONTENTSTACK_*`` environment
variables (and ``.env`` files via ConfigFactory).
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_HOST = "https://api.contentstack.io"


class RetryConfig(BaseSettings):
    """Rate-limit retry policy.

    A request answered with HTTP 429 is retried up to ``max_retries`` times.
    Retry ``n`` waits ``n * base_delay_ms`` milliseconds (linear backoff).
    """

    model_config = SettingsConfigDict(env_prefix="CONTENTSTACK_RETRY_", extra="ignore")

    base_delay_ms: int = Field(default=250, gt=0, le=60_000)
    max_retries: int = Field(default=5, ge=0, le=20)

    @property
    def base_delay(self) -> float:
        """Base delay in seconds."""
        return self.base_delay_ms / 1000.0


class StackConfig(BaseSettings):
    """Connection settings for one Contentstack stack.

    Example:
        >>> config = StackConfig(api_key="blt123", management_token="cs456")
        >>> config.branch
        'main'
    """

    model_config = SettingsConfigDict(
        env_prefix="CONTENTSTACK_",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = DEFAULT_HOST
    api_key: str
    management_token: SecretStr
    branch: str = "main"
    timeout: float = Field(default=30.0, gt=0)
    page_size: int = Field(default=100, ge=1, le=100)
    max_connections: int = Field(default=10, ge=1)
    download_workers: int = Field(default=4, ge=1, le=32)
    verify_ssl: bool = True
    retry: RetryConfig = Field(default_factory=RetryConfig)

    @field_validator("host")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("api_key")
    @classmethod
    def api_key_not_empty(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("api_key cannot be empty")
        return value

    def get_management_token(self) -> str:
        """Return the plain management token."""
        return self.management_token.get_secret_value()
