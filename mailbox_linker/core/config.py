"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the token service and the
operational scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Optional

import os

from pydantic import AnyHttpUrl, Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class GmailSettings(BaseSettings):
    """Credentials of the Google OAuth client used for mailbox linking."""

    client_id: str = Field(..., validation_alias="GMAIL_CLIENT_ID")
    client_secret: str = Field(..., validation_alias="GMAIL_CLIENT_SECRET")
    redirect_uri: AnyHttpUrl = Field(..., validation_alias="GMAIL_REDIRECT_URI")


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        (
            "https://www.googleapis.com/auth/gmail.readonly",
            "https://www.googleapis.com/auth/gmail.send",
            "https://www.googleapis.com/auth/gmail.modify",
            "https://www.googleapis.com/auth/gmail.labels",
            "https://www.googleapis.com/auth/calendar",
            "https://www.googleapis.com/auth/calendar.events",
        ),
        validation_alias="OAUTH_SCOPES",
    )
    refresh_window_seconds: int = Field(
        300,
        validation_alias="TOKEN_REFRESH_WINDOW",
        description="Refresh access tokens expiring within this many seconds.",
    )

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(value)
        return tuple(scope.strip() for scope in value.split(",") if scope.strip())


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    frontend_base_url: Optional[HttpUrl] = Field(
        None,
        validation_alias="FRONTEND_BASE_URL",
        description=(
            "Origin of the front-end; callback redirects default to the request origin."
        ),
    )
    settings_path: str = Field(
        "/settings",
        validation_alias="SETTINGS_PATH",
        description="Front-end page that displays the mailbox connection outcome.",
    )
    database_path: str = Field("data/mailbox_linker.db", validation_alias="DATABASE_PATH")
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    gmail: GmailSettings = Field(default_factory=GmailSettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "GmailSettings",
    "OAuthSettings",
    "SecuritySettings",
    "get_settings",
]
