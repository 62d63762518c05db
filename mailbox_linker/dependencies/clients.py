"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Annotated, Any

from fastapi import Depends

from mailbox_linker.clients import GmailOAuthClient, SQLiteStore
from mailbox_linker.core.config import get_settings
from mailbox_linker.services import (
    GmailTokenService,
    MailboxAccountLinker,
    TokenCipherService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_gmail_oauth_client() -> GmailOAuthClient:
    """Create a singleton Gmail OAuth client."""
    settings = _settings()
    return GmailOAuthClient(settings.gmail, settings.oauth)


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide the shared user and mailbox store."""
    settings = _settings()
    return SQLiteStore(settings.database_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.gmail.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_gmail_token_service() -> GmailTokenService:
    """Provide helper for reading and refreshing stored Gmail tokens."""
    settings = _settings()
    return GmailTokenService(
        store=get_sqlite_store(),
        oauth_client=get_gmail_oauth_client(),
        gmail_settings=settings.gmail,
        oauth_settings=settings.oauth,
        token_cipher=get_token_cipher_service(),
    )


def get_mailbox_account_linker(
    oauth_client: Annotated[Any, Depends(get_gmail_oauth_client)],
    store: Annotated[Any, Depends(get_sqlite_store)],
    token_cipher: Annotated[Any, Depends(get_token_cipher_service)],
) -> MailboxAccountLinker:
    """Build the callback linker from the (overridable) shared clients."""
    return MailboxAccountLinker(
        oauth_client=oauth_client,
        store=store,
        token_cipher=token_cipher,
    )


__all__ = [
    "get_gmail_oauth_client",
    "get_gmail_token_service",
    "get_mailbox_account_linker",
    "get_sqlite_store",
    "get_token_cipher_service",
]
