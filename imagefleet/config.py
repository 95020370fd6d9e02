"""Configuration settings for imagefleet.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_db_url() -> str:
    """Return the default database URL (project-local SQLite)."""
    db_path = Path(".imagefleet") / "cache.sqlite"
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the IMGFLEET_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMGFLEET_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    config_file: Path = Field(
        default=Path("imagefleet.yaml"),
        description="Image configuration file (YAML or JSON)",
    )
    db_url: str = Field(
        default_factory=_default_db_url,
        description="Build cache database URL",
    )
    cache_namespace: str = Field(
        default="default",
        min_length=1,
        description="Active build cache namespace",
    )

    # Operational modes
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    sequential: bool = Field(
        default=False,
        description="Build images one at a time instead of concurrently",
    )
    skip_push: bool = Field(
        default=False,
        description="Never push built images to their registry",
    )
    kube_context: str | None = Field(
        default=None,
        description="Kubernetes context the images are deployed to",
    )

    # Build tool
    docker_bin: str = Field(
        default="docker",
        description="Container build tool executable",
    )
    tag_length: int = Field(
        default=7,
        ge=1,
        le=64,
        description="Length of generated image tags",
    )

    # Timeouts (in seconds)
    build_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for a single build or push command",
    )


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


__all__ = ["Settings", "get_settings", "print_settings_json"]
