"""
Google OAuth utilities for Gmail mailbox linking.

These helpers build the consent URL, exchange authorization codes, refresh
access tokens and read the Gmail profile of a freshly authorized mailbox.
"""

from __future__ import annotations

from typing import Optional, Tuple
from urllib.parse import urlencode

import httpx

from fastapi import status

from mailbox_linker.core.config import GmailSettings, OAuthSettings
from mailbox_linker.models.gmail import GmailProfile, OAuthExchangeResult


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no usable OAuth token is stored for a mailbox."""


class GmailProfileError(Exception):
    """Raised when the Gmail profile cannot be read with a new access token."""


class GmailOAuthClient:
    """Build Google authorization URLs and talk to the token and profile endpoints."""

    AUTH_BASE_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    PROFILE_URL = "https://www.googleapis.com/gmail/v1/users/me/profile"

    def __init__(
        self,
        gmail_settings: GmailSettings,
        oauth_settings: OAuthSettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._gmail = gmail_settings
        self._oauth = oauth_settings
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def build_authorization_url(self, state: str, access_type: str = "offline") -> str:
        """Construct the Google OAuth consent URL."""
        params = {
            "client_id": self._gmail.client_id,
            "redirect_uri": str(self._gmail.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._oauth.scopes),
            "access_type": access_type,
            "prompt": "consent",
            "state": state,
        }
        query = urlencode(params)
        return f"{self.AUTH_BASE_URL}?{query}"

    async def exchange_authorization_code(self, code: str) -> OAuthExchangeResult:
        """
        Exchange a single-use authorization code for tokens.

        Google omits ``refresh_token`` when the user re-consents without a new
        offline grant, so it is optional in the result.
        """
        payload = {
            "code": code,
            "client_id": self._gmail.client_id,
            "client_secret": self._gmail.client_secret,
            "redirect_uri": str(self._gmail.redirect_uri),
            "grant_type": "authorization_code",
        }

        async with self._client() as client:
            response = await client.post(self.TOKEN_URL, data=payload)

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                f"Token exchange failed ({response.status_code}): {response.text}"
            )

        token_payload = response.json()
        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Google.")

        return OAuthExchangeResult(
            access_token=access_token,
            refresh_token=token_payload.get("refresh_token") or None,
            expires_in=int(expires_in),
            token_type=token_payload.get("token_type") or "Bearer",
        )

    async def refresh_token(self, refresh_token: str) -> Tuple[str, int]:
        """Refresh the access token using a stored refresh token."""
        payload = {
            "client_id": self._gmail.client_id,
            "client_secret": self._gmail.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        async with self._client() as client:
            response = await client.post(self.TOKEN_URL, data=payload)

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(
                f"Token refresh failed ({response.status_code}): {response.text}"
            )

        token_payload = response.json()
        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete refresh payload returned from Google.")

        return access_token, int(expires_in)

    async def fetch_profile(self, access_token: str) -> GmailProfile:
        """Read the email address and history id of the authorized mailbox."""
        headers = {"Authorization": f"Bearer {access_token}"}

        async with self._client() as client:
            response = await client.get(self.PROFILE_URL, headers=headers)

        if not response.is_success:
            raise GmailProfileError(
                f"Failed to fetch Gmail profile ({response.status_code})."
            )

        profile_payload = response.json()
        if not profile_payload.get("emailAddress"):
            raise GmailProfileError("Gmail profile did not include an email address.")

        return GmailProfile.model_validate(profile_payload)


__all__ = [
    "GmailOAuthClient",
    "GmailProfileError",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
]
