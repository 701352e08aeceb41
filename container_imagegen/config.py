"""Configuration settings for container_imagegen.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_work_dir() -> Path:
    """Return the default working directory for repo checkouts."""
    return Path.home() / ".cache" / "container-imagegen" / "work"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the CIMG_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="CIMG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    work_dir: Path = Field(
        default_factory=_default_work_dir,
        description="Directory for temporary repo checkouts",
    )

    # External tools
    docker_executable: str = Field(
        default="docker",
        description="Container engine executable",
    )
    manifest_tool_executable: str = Field(
        default="manifest-tool",
        description="Registry manifest inspection executable",
    )

    # Source control
    github_api_url: str = Field(
        default="https://api.github.com",
        description="Base URL of the GitHub REST API",
    )
    github_token: str | None = Field(
        default=None,
        description="Token used for GitHub API calls",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Concurrency
    max_concurrent_pushes: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Maximum concurrent image pushes",
    )
    max_concurrent_tags: int = Field(
        default=8,
        ge=1,
        le=64,
        description="Maximum concurrent tag and digest operations",
    )

    # Retries
    git_retry_attempts: int = Field(
        default=5,
        ge=1,
        le=20,
        description="Attempts for committing to source control",
    )
    git_retry_delay: float = Field(
        default=5.0,
        ge=0,
        description="Initial delay between source control attempts (seconds)",
    )
    build_retry_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts for image builds and pushes when retry is enabled",
    )

    # Timeouts (in seconds)
    http_timeout: int = Field(
        default=300,
        ge=10,
        description="Timeout for HTTP requests",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    The GitHub token is masked.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    if settings.github_token:
        settings = settings.model_copy(update={"github_token": "***"})
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
