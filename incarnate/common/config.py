"""Configuration management."""

from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "incarnate"
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    json_logs: bool = False

    # Provider credentials
    google_api_key: str = ""
    tripo_api_key: str = ""

    # Endpoints
    tripo_api_base: str = "https://api.tripo3d.ai/v2/openapi"

    # Default Models
    text_model: str = "gemini-3-pro-preview"
    image_model: str = "gemini-3-pro-image-preview"
    video_model: str = "veo-3.1-generate-preview"
    tripo_model_version: str = "v2.5-20250123"

    # Image output (fixed per deployment, never per call)
    image_aspect_ratio: str = "1:1"
    image_size: str = "2K"

    # Video output
    video_resolution: str = "720p"
    video_aspect_ratio: str = "16:9"

    # Refinement loop
    max_refinement_loops: int = 3
    quality_threshold: int = 85

    # Retry policy
    retry_max_attempts: int = 3
    retry_base_delay_seconds: float = 4.0

    # Task polling
    task_poll_interval_seconds: float = 3.0
    task_max_wait_seconds: float = 300.0
    video_poll_interval_seconds: float = 5.0

    # Timeouts
    http_timeout_seconds: float = 60.0

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
