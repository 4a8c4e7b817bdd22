"""
Runtime configuration helpers for the SocialHub application.

Loads DATABASE_URL, session secrets and object storage settings from the
environment, falling back to the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    # Required field
    database_url: str = Field(..., alias="DATABASE_URL")

    app_name: str = Field(default="SocialHub", alias="APP_NAME")
    api_version: str = Field(default="0.1.0", alias="API_VERSION")
    cors_origins: str | None = Field(default=None, alias="CORS_ORIGINS")

    # Sessions
    jwt_secret_key: str | None = Field(default=None, alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    jwt_expires_minutes: int = Field(default=1440, alias="JWT_EXPIRES_MINUTES")
    session_cookie_name: str = Field(default="access_token", alias="SESSION_COOKIE_NAME")

    # Object storage (any S3-compatible endpoint)
    storage_endpoint_url: str | None = Field(default=None, alias="STORAGE_ENDPOINT_URL")
    storage_access_key: str | None = Field(default=None, alias="STORAGE_ACCESS_KEY")
    storage_secret_key: str | None = Field(default=None, alias="STORAGE_SECRET_KEY")
    storage_region: str = Field(default="us-east-1", alias="STORAGE_REGION")
    post_images_bucket: str = Field(default="post-images", alias="POST_IMAGES_BUCKET")
    avatar_images_bucket: str = Field(default="avatar-images", alias="AVATAR_IMAGES_BUCKET")
    signed_url_ttl_seconds: int = Field(default=3600, alias="SIGNED_URL_TTL_SECONDS")

    # Feed and accounts
    feed_page_size: int = Field(default=10, alias="FEED_PAGE_SIZE")
    guest_email_domain: str = Field(default="guests.socialhub.app", alias="GUEST_EMAIL_DOMAIN")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def buckets(self) -> frozenset[str]:
        return frozenset({self.post_images_bucket, self.avatar_images_bucket})


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
