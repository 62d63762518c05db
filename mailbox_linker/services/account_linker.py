"""
Completes the Gmail OAuth callback and records the linked mailbox.

The linker runs once per inbound redirect: exchange the authorization code,
read the Gmail profile, resolve the user named by ``state`` and upsert the
``gmail_accounts`` row for (user, email). Every path produces exactly one
``CallbackOutcome``; failure details only reach the log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from mailbox_linker.clients import GmailOAuthClient, SQLiteStore
from mailbox_linker.models.gmail import LinkedMailboxAccount
from mailbox_linker.schemas import OAuthCallbackQuery
from mailbox_linker.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

STATUS_CONNECTED = "connected"
STATUS_ERROR = "error"

REASON_MISSING_PARAMS = "missing_params"
REASON_TOKEN_EXCHANGE = "token_exchange"


@dataclass(frozen=True, slots=True)
class CallbackOutcome:
    """Terminal result of one callback, rendered into the settings redirect."""

    status: str
    reason: Optional[str] = None
    account: Optional[LinkedMailboxAccount] = None

    @property
    def connected(self) -> bool:
        return self.status == STATUS_CONNECTED

    def query_params(self) -> dict[str, str]:
        params = {"gmail": self.status}
        if self.reason:
            params["reason"] = self.reason
        return params

    @classmethod
    def failed(cls, reason: str) -> "CallbackOutcome":
        return cls(status=STATUS_ERROR, reason=reason)


class MailboxAccountLinker:
    """Links a Gmail mailbox to the user that started the OAuth flow."""

    def __init__(
        self,
        *,
        oauth_client: GmailOAuthClient,
        store: SQLiteStore,
        token_cipher: TokenCipherService,
    ) -> None:
        self._oauth = oauth_client
        self._store = store
        self._cipher = token_cipher

    async def handle_callback(self, query: OAuthCallbackQuery) -> CallbackOutcome:
        if query.error:
            logger.warning("Gmail OAuth declined by provider: %s", query.error)
            return CallbackOutcome.failed(query.error)

        if not query.code or not query.state:
            logger.warning("Gmail OAuth callback missing code or state.")
            return CallbackOutcome.failed(REASON_MISSING_PARAMS)

        try:
            account = await self._link(code=query.code, auth_provider_id=query.state)
        except Exception:
            logger.exception("Gmail callback failed for auth provider id %s", query.state)
            return CallbackOutcome.failed(REASON_TOKEN_EXCHANGE)

        return CallbackOutcome(status=STATUS_CONNECTED, account=account)

    async def _link(self, *, code: str, auth_provider_id: str) -> LinkedMailboxAccount:
        tokens = await self._oauth.exchange_authorization_code(code)
        profile = await self._oauth.fetch_profile(tokens.access_token)
        user = self._store.get_user_by_auth_provider_id(auth_provider_id)

        token_expiry = datetime.now(timezone.utc) + timedelta(seconds=tokens.expires_in)
        account = self._store.upsert_gmail_account(
            user_id=user.id,
            email=profile.email_address,
            access_token_encrypted=self._cipher.encrypt(tokens.access_token),
            refresh_token_encrypted=self._cipher.encrypt_optional(tokens.refresh_token),
            token_expiry=token_expiry,
            history_id=profile.history_id,
        )

        logger.info(
            "Gmail connected: %s for user: %s",
            profile.email_address,
            user.full_name or user.id,
        )
        return account


__all__ = [
    "CallbackOutcome",
    "MailboxAccountLinker",
    "REASON_MISSING_PARAMS",
    "REASON_TOKEN_EXCHANGE",
    "STATUS_CONNECTED",
    "STATUS_ERROR",
]
