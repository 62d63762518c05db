"""Pytest configuration shared across the suite."""

import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover
    import _bootstrap  # type: ignore # noqa: F401

from mailbox_linker.clients import SQLiteStore
from mailbox_linker.models.gmail import InternalUser
from mailbox_linker.services.token_cipher import TokenCipherService


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def store(tmp_path) -> SQLiteStore:
    """A fresh store with user ``u1`` registered under auth provider id ``u1``."""
    sqlite_store = SQLiteStore(str(tmp_path / "linker.db"))
    sqlite_store.put_user(
        InternalUser(id="user-1", auth_provider_id="u1", email="owner@x.com", full_name="Ada Owner")
    )
    return sqlite_store


@pytest.fixture
def cipher() -> TokenCipherService:
    return TokenCipherService(secret="secret-key")
