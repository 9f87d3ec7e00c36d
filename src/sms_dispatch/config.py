"""
Configuration management for the SMS dispatch engine.

Loads settings from environment variables (and a project-root .env file)
with defaults matching the upstream gateway quota.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .errors import ConfigurationError

# Load .env file from project root
_project_root = Path(__file__).parent.parent.parent
_env_file = _project_root / '.env'
if _env_file.exists():
    load_dotenv(_env_file)


class FailurePolicy(str, Enum):
    """How one recipient's failure affects the rest of the envelope."""

    CONTINUE = 'continue'
    FAIL_FAST = 'fail_fast'


class Settings(BaseSettings):
    """Dispatch engine settings loaded from environment variables."""

    # Rate limiting
    RATE_LIMITING_ENABLED: bool = True
    LIMIT_FOR_PERIOD: int = 18
    REFRESH_PERIOD_MS: int = Field(default=1500, gt=0)
    ACQUIRE_TIMEOUT_MS: int = Field(default=1500, ge=0)

    # Dispatch
    FAILURE_POLICY: FailurePolicy = FailurePolicy.CONTINUE
    MAX_WORKERS: int = Field(default=8, ge=1, le=64)

    # Gateway
    GATEWAY_BASE_URL: str = ''
    GATEWAY_API_KEY: str = ''
    GATEWAY_SENDER_ID: str | None = None
    GATEWAY_TIMEOUT_SECONDS: int = Field(default=10, ge=1, le=120)
    GATEWAY_MAX_ATTEMPTS: int = Field(default=3, ge=1, le=10)

    # API
    WORKER_API_KEY: str = ''

    # Logging
    LOG_LEVEL: str = 'INFO'
    LOG_JSON: bool = False

    @property
    def refresh_period_seconds(self) -> float:
        return self.REFRESH_PERIOD_MS / 1000

    @property
    def acquire_timeout_seconds(self) -> float:
        return self.ACQUIRE_TIMEOUT_MS / 1000

    def missing_gateway_settings(self) -> list[str]:
        """
        Validate that gateway configuration is present.

        Returns:
            List of missing required configuration keys
        """
        missing = []
        if not self.GATEWAY_BASE_URL:
            missing.append('GATEWAY_BASE_URL')
        if not self.GATEWAY_API_KEY:
            missing.append('GATEWAY_API_KEY')
        return missing


def load_settings() -> Settings:
    """Build settings from the environment, surfacing bad values as ConfigurationError."""
    try:
        return Settings()
    except ValidationError as e:
        raise ConfigurationError(
            'Invalid dispatch configuration',
            context={'errors': [err['loc'][0] for err in e.errors() if err['loc']]},
        ) from e


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return load_settings()
