"""Application configuration."""

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings.

    Environment variables will be loaded and validated using Pydantic.
    """

    APP_NAME: str = "Personal Website"
    VERSION: str = "0.1.0"

    # Database Settings
    DATABASE_URL: str = "sqlite:///website.db"
    DB_ECHO: bool = False

    # Content directories, one per content kind
    BLOGS_DIRECTORY: Path = Path("blogs")
    IMAGES_DIRECTORY: Path = Path("static/images")
    CSS_DIRECTORY: Path = Path("static/css")

    # Synchronization Settings
    SYNC_INTERVAL_SECONDS: float = Field(default=300, gt=0)
    SYNC_START_DELAY_SECONDS: float = Field(default=5, ge=0)
    SYNC_WORKERS: int = Field(default=4, ge=1)
    WATCH_CHANNEL_SIZE: int = Field(default=1024, ge=1)
    HASH_ALGORITHM: str = "sha256"

    # Cache Settings
    EVICTION_INTERVAL_SECONDS: float = Field(default=3600, gt=0)
    EVICTION_START_DELAY_SECONDS: float = Field(default=5, ge=0)
    STALENESS_THRESHOLD_SECONDS: float = Field(default=14400, gt=0)  # 4 hours
    RECENT_COUNT: int = Field(default=8, ge=1)
    CACHE_CONTROL: str = "public, max-age=0, must-revalidate"

    # Feed Settings
    SITE_URL: str = "http://localhost:8000/"
    FEED_TITLE: str = "Personal Website"
    FEED_DESCRIPTION: str = "Latest blogs"

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",  # Allow extra fields in environment
    )

    @model_validator(mode="after")
    def normalize_site_url(self) -> "Settings":
        """Ensure the site URL ends with a slash so links can be appended."""
        if not self.SITE_URL.endswith("/"):
            self.SITE_URL = self.SITE_URL + "/"
        return self

