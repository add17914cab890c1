"""
Configuration and settings for the Greenhall backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    project_name: str = Field(default="Greenhall Capital Backend API")
    api_prefix: str = Field(default="")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5001)
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Document store (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None)

    # S3-compatible image host
    asset_bucket: Optional[str] = Field(default=None)
    asset_region: Optional[str] = Field(default=None)
    asset_endpoint: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    # Base URL the bucket is publicly served from, e.g. a CDN domain.
    asset_public_base_url: Optional[str] = Field(default=None)

    # Uploads
    asset_folder: str = Field(default="greenhall-capital")
    max_upload_bytes: int = Field(default=10 * 1024 * 1024)
    allowed_image_formats: list[str] = Field(
        default_factory=lambda: ["jpg", "png", "jpeg", "gif", "webp", "svg"]
    )

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
