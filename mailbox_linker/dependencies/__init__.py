"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_gmail_oauth_client,
    get_gmail_token_service,
    get_mailbox_account_linker,
    get_sqlite_store,
    get_token_cipher_service,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_gmail_oauth_client",
    "get_gmail_token_service",
    "get_mailbox_account_linker",
    "get_sqlite_store",
    "get_token_cipher_service",
]
