"""
Helpers for retrieving and refreshing Gmail OAuth tokens.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from google.oauth2.credentials import Credentials

from mailbox_linker.clients import GmailOAuthClient, SQLiteStore
from mailbox_linker.clients.google_auth import OAuthTokenNotFoundError
from mailbox_linker.core.config import GmailSettings, OAuthSettings
from mailbox_linker.models.gmail import LinkedMailboxAccount
from mailbox_linker.services.token_cipher import TokenCipherService


class GmailTokenService:
    """Manages access to the tokens of linked Gmail mailboxes."""

    def __init__(
        self,
        store: SQLiteStore,
        oauth_client: GmailOAuthClient,
        gmail_settings: GmailSettings,
        oauth_settings: OAuthSettings,
        token_cipher: TokenCipherService,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._gmail = gmail_settings
        self._oauth_settings = oauth_settings
        self._cipher = token_cipher
        self._refresh_window = timedelta(seconds=oauth_settings.refresh_window_seconds)

    def get_user_account(self, user_id: str) -> Optional[LinkedMailboxAccount]:
        """Return the active mailbox linked by a user, if any."""
        return self._store.find_active_gmail_account(user_id)

    async def get_valid_token(self, account_id: str) -> str:
        """Return an access token for the mailbox, refreshing it when near expiry."""
        account = self._store.get_gmail_account(account_id)
        if account is None:
            raise OAuthTokenNotFoundError(f"Gmail account {account_id} not found.")

        expires_at = account.token_expiry
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        now = datetime.now(timezone.utc)
        if expires_at >= now + self._refresh_window:
            return self._cipher.decrypt(account.access_token_encrypted)

        if not account.refresh_token_encrypted:
            raise OAuthTokenNotFoundError(
                "Stored Gmail token expired and no refresh token is available; "
                "re-link the mailbox."
            )

        refresh_token = self._cipher.decrypt(account.refresh_token_encrypted)
        access_token, expires_in = await self._oauth.refresh_token(refresh_token)
        self._store.update_access_token(
            account_id=account.id,
            access_token_encrypted=self._cipher.encrypt(access_token),
            token_expiry=now + timedelta(seconds=expires_in),
        )
        return access_token

    async def get_credentials(self, account_id: str) -> Credentials:
        """Build Google client credentials for a linked mailbox."""
        access_token = await self.get_valid_token(account_id)
        account = self._store.get_gmail_account(account_id)
        refresh_token = None
        if account is not None and account.refresh_token_encrypted:
            refresh_token = self._cipher.decrypt(account.refresh_token_encrypted)

        return Credentials(
            token=access_token,
            refresh_token=refresh_token,
            token_uri=GmailOAuthClient.TOKEN_URL,
            client_id=self._gmail.client_id,
            client_secret=self._gmail.client_secret,
            scopes=list(self._oauth_settings.scopes),
        )


__all__ = ["GmailTokenService"]
