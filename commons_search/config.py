"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Wikimedia Commons API Configuration
    commons_api_base: str = Field(
        default="https://commons.wikimedia.org/w/api.php",
        description="Wikimedia Commons action API endpoint",
    )
    user_agent: str = Field(
        default="commons-image-search/1.0.0 (https://github.com/commons-image-search)",
        description="User-Agent sent with every outbound request",
    )
    request_timeout: float = Field(default=15.0, description="Search request timeout in seconds")
    thumbnail_timeout: float = Field(
        default=10.0, description="Deadline for a single thumbnail fetch in seconds"
    )

    # Search limits
    max_results_limit: int = Field(default=50, description="Most results the API returns per call")
    lookahead_count: int = Field(
        default=1, description="Extra items requested past the page to detect more results"
    )
    text_field_limit: int = Field(default=500, description="Cap for free-text metadata fields")
    license_name_limit: int = Field(default=100, description="Cap for license names")
    character_limit: int = Field(default=25000, description="Cap for the text response")

    # Thumbnail composite
    thumbnail_size: int = Field(default=256, description="Thumbnail bounding box side in pixels")
    grid_columns: int = Field(default=3, description="Columns in the composite grid")
    grid_spacing: int = Field(default=10, description="Gap between grid cells in pixels")
    label_offset: int = Field(default=5, description="Label distance from the cell corner")
    label_font_size: int = Field(default=20, description="Index label font size")
    jpeg_quality: int = Field(default=90, ge=1, le=100, description="Composite JPEG quality")
    max_images_in_composite: int = Field(default=15, description="Most items drawn in a composite")
    fetch_concurrency: int = Field(default=8, ge=1, description="Parallel thumbnail fetches")

    # Application Configuration
    app_title: str = Field(default="Commons Image Search", description="Application title")
    app_version: str = Field(default="1.0.0", description="Application version")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(default=False, description="Use JSON log format")
    log_file: str | None = Field(default=None, description="Optional log file path")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
