"""Application configuration read from the environment and an optional .env file.

Only developer/operator concerns live here (storage, paths, logging, worker
pool, snapshot timezone). Per-team pick thresholds are user-owned values
handled by ``football_analysis.analysis.algo_settings`` and are never read
from the environment.

Usage:
    from football_analysis.config import get_settings

    settings = get_settings()
    print(settings.database_url, settings.timezone)
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url

PROJECT_ROOT = Path(__file__).resolve().parents[3]

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_database_url() -> str:
    return f"sqlite:///{PROJECT_ROOT / 'data' / 'football_analysis.db'}"


class Settings(BaseSettings):
    """Settings for the CLI, storage layer and batch runner."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Storage
    # ==========================================================================
    database_url: str = Field(
        default_factory=_default_database_url,
        description="SQLAlchemy URL of the team settings / daily picks database"
    )
    anonymous_user_id: str = Field(
        default="00000000-0000-0000-0000-000000000000",
        description="Owner of team settings saved without a user id"
    )

    # ==========================================================================
    # Analysis runtime
    # ==========================================================================
    form_window: int = Field(
        default=5, ge=1,
        description="Results shown in a team's form line"
    )
    max_workers: int = Field(
        default=4, ge=1, le=64,
        description="Threads used by analyze_teams / analyze_leagues"
    )
    timezone: str = Field(
        default="America/Toronto",
        description="Timezone whose calendar date keys daily pick snapshots"
    )

    # ==========================================================================
    # Paths and logging
    # ==========================================================================
    data_dir: Path = Field(default_factory=lambda: PROJECT_ROOT / "data")
    logs_dir: Path = Field(default_factory=lambda: PROJECT_ROOT / "logs")
    log_level: str = Field(default="INFO", description="Console log level")
    log_to_file: bool = Field(default=True, description="Also write a daily log file")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    @property
    def db_path(self) -> Optional[Path]:
        """File behind a SQLite URL; None for in-memory or server databases."""
        url = make_url(self.database_url)
        if url.get_backend_name() != "sqlite" or url.database in (None, "", ":memory:"):
            return None
        return Path(url.database)

    def ensure_directories(self) -> None:
        """Create the data, logs and SQLite database directories."""
        directories = [self.data_dir, self.logs_dir]
        if self.db_path is not None:
            directories.append(self.db_path.parent)
        for directory in directories:
            directory.mkdir(parents=True, exist_ok=True)


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings; call ``get_settings.cache_clear()`` to reload."""
    settings = Settings()
    settings.ensure_directories()
    return settings
