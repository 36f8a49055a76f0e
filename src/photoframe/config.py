"""Application configuration using environment variables."""

from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root once so that `.env` is discovered regardless of CWD
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Load configuration from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    slideshow_database_path: Path = Field(
        default_factory=lambda: Path("data/slideshow.db"),
        validation_alias=AliasChoices(
            "SLIDESHOW_DATABASE_PATH", "slideshow_database_path"
        ),
    )
    slideshow_queue_size: int = Field(
        default=100,
        ge=1,
        validation_alias=AliasChoices("SLIDESHOW_QUEUE_SIZE", "slideshow_queue_size"),
    )
    slideshow_pairing_threshold: float = Field(
        default=0.4,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices(
            "SLIDESHOW_PAIRING_THRESHOLD",
            "slideshow_pairing_threshold",
        ),
    )
    seed_default_devices: bool = Field(
        default=True,
        validation_alias=AliasChoices("SEED_DEFAULT_DEVICES", "seed_default_devices"),
    )

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "log_level"),
    )
    log_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices("LOG_DIR", "log_dir"),
        description="Directory for date-stamped log files; unset disables file logging.",
    )
    log_timezone: str = Field(
        default="UTC",
        validation_alias=AliasChoices("LOG_TIMEZONE", "log_timezone"),
    )
    logging_settings_path: Path = Field(
        default_factory=lambda: Path("logging_settings.conf"),
        validation_alias=AliasChoices("LOGGING_SETTINGS_PATH", "logging_settings_path"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached `Settings` instance."""

    return Settings()  # pyright: ignore[reportCallIssue]


__all__ = ["PROJECT_ROOT", "Settings", "get_settings"]
