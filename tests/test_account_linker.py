from __future__ import annotations

import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from mailbox_linker.clients import GmailProfileError, OAuthTokenExchangeError
from mailbox_linker.models.gmail import GmailProfile, OAuthExchangeResult
from mailbox_linker.schemas import OAuthCallbackQuery
from mailbox_linker.services.account_linker import MailboxAccountLinker

pytestmark = pytest.mark.anyio


class FakeOAuthClient:
    def __init__(
        self,
        *,
        tokens: OAuthExchangeResult | None = None,
        profile: GmailProfile | None = None,
        exchange_error: Exception | None = None,
        profile_error: Exception | None = None,
    ) -> None:
        self.tokens = tokens or OAuthExchangeResult(
            access_token="T1", refresh_token="R1", expires_in=3600
        )
        self.profile = profile or GmailProfile(emailAddress="a@x.com", historyId="42")
        self.exchange_error = exchange_error
        self.profile_error = profile_error
        self.codes: list[str] = []
        self.profile_tokens: list[str] = []

    async def exchange_authorization_code(self, code: str) -> OAuthExchangeResult:
        self.codes.append(code)
        if self.exchange_error:
            raise self.exchange_error
        return self.tokens

    async def fetch_profile(self, access_token: str) -> GmailProfile:
        self.profile_tokens.append(access_token)
        if self.profile_error:
            raise self.profile_error
        return self.profile


def _linker(oauth_client, store, cipher) -> MailboxAccountLinker:
    return MailboxAccountLinker(oauth_client=oauth_client, store=store, token_cipher=cipher)


async def test_successful_link_creates_account(store, cipher) -> None:
    oauth_client = FakeOAuthClient()
    before = datetime.now(timezone.utc)

    outcome = await _linker(oauth_client, store, cipher).handle_callback(
        OAuthCallbackQuery(code="abc", state="u1")
    )

    after = datetime.now(timezone.utc)
    assert outcome.connected
    assert outcome.query_params() == {"gmail": "connected"}
    assert oauth_client.codes == ["abc"]
    assert oauth_client.profile_tokens == ["T1"]

    accounts = store.list_gmail_accounts("user-1")
    assert len(accounts) == 1
    account = accounts[0]
    assert account.email == "a@x.com"
    assert account.history_id == "42"
    assert account.is_active is True
    assert cipher.decrypt(account.access_token_encrypted) == "T1"
    assert cipher.decrypt(account.refresh_token_encrypted) == "R1"
    assert before + timedelta(seconds=3600) <= account.token_expiry
    assert account.token_expiry <= after + timedelta(seconds=3600)


async def test_relinking_same_mailbox_updates_single_record(store, cipher) -> None:
    await _linker(FakeOAuthClient(), store, cipher).handle_callback(
        OAuthCallbackQuery(code="first", state="u1")
    )
    second_client = FakeOAuthClient(
        tokens=OAuthExchangeResult(access_token="T2", refresh_token="R2", expires_in=1800),
        profile=GmailProfile(emailAddress="a@x.com", historyId="99"),
    )

    outcome = await _linker(second_client, store, cipher).handle_callback(
        OAuthCallbackQuery(code="second", state="u1")
    )

    assert outcome.connected
    accounts = store.list_gmail_accounts("user-1")
    assert len(accounts) == 1
    assert cipher.decrypt(accounts[0].access_token_encrypted) == "T2"
    assert cipher.decrypt(accounts[0].refresh_token_encrypted) == "R2"
    assert accounts[0].history_id == "99"


async def test_relink_without_refresh_token_keeps_previous_one(store, cipher) -> None:
    await _linker(FakeOAuthClient(), store, cipher).handle_callback(
        OAuthCallbackQuery(code="first", state="u1")
    )
    reconsent_client = FakeOAuthClient(
        tokens=OAuthExchangeResult(access_token="T2", expires_in=3600),
        profile=GmailProfile(emailAddress="a@x.com"),
    )

    await _linker(reconsent_client, store, cipher).handle_callback(
        OAuthCallbackQuery(code="second", state="u1")
    )

    (account,) = store.list_gmail_accounts("user-1")
    assert cipher.decrypt(account.access_token_encrypted) == "T2"
    assert cipher.decrypt(account.refresh_token_encrypted) == "R1"
    assert account.history_id is None


async def test_provider_error_is_passed_through_without_calls(store, cipher) -> None:
    oauth_client = FakeOAuthClient()

    outcome = await _linker(oauth_client, store, cipher).handle_callback(
        OAuthCallbackQuery(error="access_denied", code="abc", state="u1")
    )

    assert outcome.query_params() == {"gmail": "error", "reason": "access_denied"}
    assert oauth_client.codes == []
    assert store.list_gmail_accounts("user-1") == []


@pytest.mark.parametrize(
    "query",
    [
        OAuthCallbackQuery(state="u1"),
        OAuthCallbackQuery(code="abc"),
        OAuthCallbackQuery(),
    ],
)
async def test_missing_params_fail_fast(store, cipher, query) -> None:
    oauth_client = FakeOAuthClient()

    outcome = await _linker(oauth_client, store, cipher).handle_callback(query)

    assert outcome.query_params() == {"gmail": "error", "reason": "missing_params"}
    assert oauth_client.codes == []


async def test_exchange_failure_maps_to_token_exchange(store, cipher) -> None:
    oauth_client = FakeOAuthClient(exchange_error=OAuthTokenExchangeError("invalid_grant"))

    outcome = await _linker(oauth_client, store, cipher).handle_callback(
        OAuthCallbackQuery(code="used", state="u1")
    )

    assert outcome.query_params() == {"gmail": "error", "reason": "token_exchange"}
    assert oauth_client.profile_tokens == []
    assert store.list_gmail_accounts("user-1") == []


async def test_profile_failure_leaves_store_untouched(store, cipher) -> None:
    oauth_client = FakeOAuthClient(profile_error=GmailProfileError("403"))

    outcome = await _linker(oauth_client, store, cipher).handle_callback(
        OAuthCallbackQuery(code="abc", state="u1")
    )

    assert outcome.reason == "token_exchange"
    assert store.list_gmail_accounts("user-1") == []


async def test_unknown_state_user_leaves_store_untouched(store, cipher) -> None:
    outcome = await _linker(FakeOAuthClient(), store, cipher).handle_callback(
        OAuthCallbackQuery(code="abc", state="stranger")
    )

    assert outcome.reason == "token_exchange"
    assert store.list_gmail_accounts("user-1") == []


async def test_failure_detail_goes_to_log_only(store, cipher, caplog) -> None:
    oauth_client = FakeOAuthClient(
        exchange_error=OAuthTokenExchangeError("secret internal detail")
    )

    with caplog.at_level("ERROR"):
        outcome = await _linker(oauth_client, store, cipher).handle_callback(
            OAuthCallbackQuery(code="abc", state="u1")
        )

    assert "secret internal detail" not in str(outcome.query_params())
    assert "secret internal detail" in caplog.text


async def test_persistence_failure_maps_to_token_exchange(store, cipher, monkeypatch) -> None:
    def broken_upsert(**kwargs):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(store, "upsert_gmail_account", broken_upsert)

    outcome = await _linker(FakeOAuthClient(), store, cipher).handle_callback(
        OAuthCallbackQuery(code="abc", state="u1")
    )

    assert outcome.query_params() == {"gmail": "error", "reason": "token_exchange"}
    assert outcome.account is None
