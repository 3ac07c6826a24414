"""Configuration management with pydantic-settings for star-sync.

Loads from (in order of precedence):
1. Environment variables
2. .env file in the working directory
3. Default values

The config is frozen after load and cached as a process-wide singleton.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("starsync.config")

__all__ = [
    "DEFAULT_API_URL",
    "SyncConfig",
    "get_config",
    "reset_config",
]

DEFAULT_API_URL = "https://api.github.com"

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
VALID_LOG_FORMATS = {"json", "text"}


class SyncConfig(BaseSettings):
    """Configuration for the starred-repository mirror.

    Attributes:
        github_token: GitHub token used for every API call (SecretStr)
        github_username: User whose starred repositories are mirrored
        github_api_url: GitHub REST API base URL
        database_url: SQLAlchemy URL of the persistent store
        enable_sync_on_boot: Run one sync immediately at service start
        enable_sync_schedule: Run a sync every sync_interval seconds
        sync_interval: Seconds between scheduled runs
        readme_freshness_hours: Age after which a cached README is re-fetched
        rate_limit_max_waits: Consecutive rate-limit waits allowed per request
        metrics_port: Port for Prometheus exposition (0 = disabled)
        health_file: File touched after every successful run
        log_level: Logging level
        log_format: json for production, text for development
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        validate_default=True,
        frozen=True,
        extra="ignore",
    )

    # --- GitHub ---
    github_token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token (read access to the user's stars and public repos)",
    )
    github_username: str = Field(
        default="",
        description="GitHub login whose starred repositories are mirrored",
    )
    github_api_url: str = Field(
        default=DEFAULT_API_URL,
        description="GitHub REST API base URL (GitHub Enterprise: https://host/api/v3)",
    )

    # --- Store ---
    database_url: str = Field(
        default="sqlite:///star_sync.db",
        description="SQLAlchemy database URL",
    )

    # --- Triggers ---
    enable_sync_on_boot: bool = Field(
        default=False,
        description="Run an initial sync when the service starts",
    )
    enable_sync_schedule: bool = Field(
        default=False,
        description="Run periodic syncs every sync_interval seconds",
    )
    sync_interval: int = Field(
        default=300,
        ge=60,
        le=86400,
        description="Seconds between scheduled syncs (default: 300 = 5 min)",
    )

    # --- Sync tuning ---
    readme_freshness_hours: int = Field(
        default=24,
        ge=1,
        le=720,
        description="Cached READMEs older than this are re-fetched on update",
    )
    rate_limit_max_waits: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum rate-limit waits for a single request before giving up",
    )

    # --- Observability ---
    metrics_port: int = Field(
        default=0,
        ge=0,
        le=65535,
        description="Prometheus exposition port (0 disables the endpoint)",
    )
    health_file: Path = Field(
        default=Path("/tmp/star_sync.health"),
        description="Liveness file rewritten after every successful sync",
    )
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json or text)")

    @field_validator("github_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the API base URL."""
        return v.rstrip("/")

    @field_validator("github_username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        """Usernames are single path segments."""
        v = v.strip()
        if "/" in v:
            raise ValueError("GITHUB_USERNAME must be a login, not owner/repo")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Accept any case, store upper case."""
        level = v.upper()
        if level not in VALID_LOG_LEVELS:
            raise ValueError(
                f"Invalid log level '{v}'. Expected one of {sorted(VALID_LOG_LEVELS)}"
            )
        return level

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        fmt = v.lower()
        if fmt not in VALID_LOG_FORMATS:
            raise ValueError(f"Invalid log format '{v}'. Expected json or text")
        return fmt

    @property
    def has_credentials(self) -> bool:
        """True when both the token and the username are configured."""
        return bool(self.github_token.get_secret_value() and self.github_username)

    def describe(self) -> dict[str, object]:
        """Resolved settings for the startup log line (secrets reported as set/missing)."""
        return {
            "enable_sync_on_boot": self.enable_sync_on_boot,
            "enable_sync_schedule": self.enable_sync_schedule,
            "sync_interval": self.sync_interval,
            "github_username": "set" if self.github_username else "missing",
            "github_token": "set" if self.github_token.get_secret_value() else "missing",
            "metrics_port": self.metrics_port,
        }


@lru_cache(maxsize=1)
def get_config() -> SyncConfig:
    """Get global configuration singleton.

    First call loads from environment + .env file, subsequent calls return
    the cached instance.

    Raises:
        ValidationError: If configuration values are invalid.
    """
    return SyncConfig()


def reset_config() -> None:
    """Reset configuration singleton for testing."""
    get_config.cache_clear()
