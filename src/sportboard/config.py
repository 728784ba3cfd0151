"""Configuration settings for the SportBoard engine."""

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Storage
    db_path: Path | None = None
    export_dir: Path | None = None

    # Calendar
    timezone: str = "Europe/Madrid"
    locale: str = "es_ES"

    # Runner profile refresh interval (days)
    profile_recompute_days: int = 7

    log_level: str = "INFO"

    def model_post_init(self, __context) -> None:
        """Set default paths after initialization."""
        if self.db_path is None:
            self.db_path = Path.cwd() / "sportboard.db"
        if self.export_dir is None:
            self.export_dir = Path.cwd() / "exports"

    class Config:
        env_prefix = "SPORTBOARD_"
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
