"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import MISSING_API_KEY_MESSAGE, ConfigurationError

DEFAULT_LANGUAGE = "en-US"
DEFAULT_REGION = "US"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="Movie Discovery", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8000, alias="PORT")

    tmdb_api_key: str | None = Field(default=None, alias="TMDB_API_KEY")
    tmdb_language: str = Field(default=DEFAULT_LANGUAGE, alias="TMDB_LANGUAGE")
    tmdb_region: str = Field(default=DEFAULT_REGION, alias="TMDB_REGION")
    tmdb_api_url: HttpUrl = Field(
        default="https://api.themoviedb.org/3", alias="TMDB_API_URL"
    )
    tmdb_image_url: str = Field(
        default="https://image.tmdb.org/t/p/w500", alias="TMDB_IMAGE_URL"
    )

    request_timeout_seconds: float = Field(
        default=15.0, alias="REQUEST_TIMEOUT", gt=0, le=120
    )
    retry_limit: int = Field(default=2, alias="RETRY_LIMIT", ge=0, le=10)
    retry_backoff_seconds: float = Field(default=0.4, alias="RETRY_BACKOFF", ge=0)

    back_debounce_seconds: float = Field(
        default=0.35, alias="BACK_DEBOUNCE", ge=0, le=5
    )
    search_debounce_seconds: float = Field(
        default=0.3, alias="SEARCH_DEBOUNCE", ge=0, le=5
    )
    review_upload_step_seconds: float = Field(
        default=0.3, alias="REVIEW_UPLOAD_STEP", ge=0
    )

    database_url: str = Field(
        default="sqlite+aiosqlite:///./movie_discovery.db", alias="DATABASE_URL"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("tmdb_api_key", mode="before")
    @classmethod
    def _blank_key_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("tmdb_language", "tmdb_region", mode="before")
    @classmethod
    def _default_locale(cls, value: object, info: ValidationInfo) -> object:
        """Fall back to the documented locale defaults for blank values."""

        if value is None or (isinstance(value, str) and not value.strip()):
            if info.field_name == "tmdb_language":
                return DEFAULT_LANGUAGE
            return DEFAULT_REGION
        return value.strip() if isinstance(value, str) else value

    def configuration_error(self) -> str | None:
        """Return a blocking setup message, or ``None`` when configured."""

        if not self.tmdb_api_key:
            return MISSING_API_KEY_MESSAGE
        return None

    def require_api_key(self) -> str:
        """Return the TMDB key or raise :class:`ConfigurationError`."""

        message = self.configuration_error()
        if message is not None or self.tmdb_api_key is None:
            raise ConfigurationError(message or MISSING_API_KEY_MESSAGE)
        return self.tmdb_api_key

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
