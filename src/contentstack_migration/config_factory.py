"""Factory helpers for building StackConfig instances.

Wraps pydantic validation so callers only ever see ConfigurationError.
"""

import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models.config import RetryConfig, StackConfig

logger = logging.getLogger(__name__)


class ConfigFactory:
    """Build configuration from keyword arguments, dicts, env vars or .env files."""

    @staticmethod
    def create(**kwargs: Any) -> StackConfig:
        """Create a config from explicit values.

        ``retry`` may be a RetryConfig or a plain dict.

        Raises:
            ConfigurationError: If validation fails
        """
        retry = kwargs.get("retry")
        try:
            if isinstance(retry, dict):
                kwargs["retry"] = RetryConfig(**retry)
            return StackConfig(**kwargs)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def from_dict(data: dict[str, Any]) -> StackConfig:
        """Create a config from a dictionary."""
        return ConfigFactory.create(**dict(data))

    @staticmethod
    def from_environment_only() -> StackConfig:
        """Create a config from CONTENTSTACK_* environment variables only."""
        try:
            return StackConfig()  # type: ignore[call-arg]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def from_env_file(env_file: str | Path, *, required: bool = False) -> StackConfig:
        """Create a config from a .env file, falling back to environment variables.

        Args:
            env_file: Path to the .env file
            required: Raise if the file does not exist

        Raises:
            ConfigurationError: If the file is required but missing, or validation fails
        """
        path = Path(env_file)
        if not path.is_file():
            if required:
                raise ConfigurationError(f".env file not found: {path}")
            logger.debug(f".env file {path} not found, using environment only")
            return ConfigFactory.from_environment_only()

        try:
            retry = RetryConfig(_env_file=path)  # type: ignore[call-arg]
            return StackConfig(_env_file=path, retry=retry)  # type: ignore[call-arg]
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @staticmethod
    def with_overrides(base: StackConfig, **overrides: Any) -> StackConfig:
        """Return a copy of ``base`` with non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        if not values:
            return base
        merged = base.model_dump()
        merged["management_token"] = base.get_management_token()
        merged.update(values)
        return ConfigFactory.from_dict(merged)


def load_config(env_file: str | Path | None = None, *, required: bool = False) -> StackConfig:
    """Load configuration from ``env_file`` (default ``./.env``) and the environment."""
    return ConfigFactory.from_env_file(env_file or ".env", required=required)
