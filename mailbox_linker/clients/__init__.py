"""Expose constructed client wrappers."""

from .google_auth import (
    GmailOAuthClient,
    GmailProfileError,
    OAuthTokenExchangeError,
    OAuthTokenNotFoundError,
)
from .sqlite_store import SQLiteStore, UserNotFoundError

__all__ = [
    "GmailOAuthClient",
    "GmailProfileError",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
    "SQLiteStore",
    "UserNotFoundError",
]
