"""SQLite-backed store for users and their linked Gmail mailboxes."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from mailbox_linker.models.gmail import InternalUser, LinkedMailboxAccount


class UserNotFoundError(Exception):
    """Raised when no user matches an auth provider identifier."""


class SQLiteStore:
    """Relational store keyed the same way as the product database.

    ``gmail_accounts`` carries a unique (user_id, email) constraint so linking
    the same mailbox twice updates the existing row.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id TEXT PRIMARY KEY,
                    auth_provider_id TEXT NOT NULL UNIQUE,
                    email TEXT,
                    full_name TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS gmail_accounts (
                    id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL REFERENCES users(id),
                    email TEXT NOT NULL,
                    access_token_encrypted TEXT NOT NULL,
                    refresh_token_encrypted TEXT,
                    token_expiry TEXT NOT NULL,
                    history_id TEXT,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    UNIQUE (user_id, email)
                )
                """
            )

    def put_user(self, user: InternalUser) -> None:
        """Insert or replace a user row; users are owned by the auth collaborator."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO users (id, auth_provider_id, email, full_name)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    auth_provider_id = excluded.auth_provider_id,
                    email = excluded.email,
                    full_name = excluded.full_name
                """,
                (user.id, user.auth_provider_id, user.email, user.full_name),
            )

    def find_user_by_auth_provider_id(self, auth_provider_id: str) -> Optional[InternalUser]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE auth_provider_id = ?",
                (auth_provider_id,),
            ).fetchone()
        if not row:
            return None
        return InternalUser(**dict(row))

    def get_user_by_auth_provider_id(self, auth_provider_id: str) -> InternalUser:
        user = self.find_user_by_auth_provider_id(auth_provider_id)
        if user is None:
            raise UserNotFoundError(
                f"No user registered for auth provider id {auth_provider_id!r}."
            )
        return user

    def upsert_gmail_account(
        self,
        *,
        user_id: str,
        email: str,
        access_token_encrypted: str,
        refresh_token_encrypted: Optional[str],
        token_expiry: datetime,
        history_id: Optional[str],
    ) -> LinkedMailboxAccount:
        """Create the (user_id, email) mailbox row or refresh its credentials.

        A missing refresh token keeps the one already stored for the pair.
        """
        now_iso = datetime.now(timezone.utc).isoformat()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO gmail_accounts (
                    id, user_id, email, access_token_encrypted,
                    refresh_token_encrypted, token_expiry, history_id,
                    is_active, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?, ?)
                ON CONFLICT(user_id, email) DO UPDATE SET
                    access_token_encrypted = excluded.access_token_encrypted,
                    refresh_token_encrypted = COALESCE(
                        excluded.refresh_token_encrypted,
                        gmail_accounts.refresh_token_encrypted
                    ),
                    token_expiry = excluded.token_expiry,
                    history_id = excluded.history_id,
                    is_active = 1,
                    updated_at = excluded.updated_at
                """,
                (
                    uuid4().hex,
                    user_id,
                    email,
                    access_token_encrypted,
                    refresh_token_encrypted,
                    token_expiry.isoformat(),
                    history_id,
                    now_iso,
                    now_iso,
                ),
            )
            row = conn.execute(
                "SELECT * FROM gmail_accounts WHERE user_id = ? AND email = ?",
                (user_id, email),
            ).fetchone()
        return _to_account(row)

    def get_gmail_account(self, account_id: str) -> Optional[LinkedMailboxAccount]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM gmail_accounts WHERE id = ?",
                (account_id,),
            ).fetchone()
        if not row:
            return None
        return _to_account(row)

    def find_active_gmail_account(self, user_id: str) -> Optional[LinkedMailboxAccount]:
        """Return the most recently updated active mailbox of a user."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM gmail_accounts
                WHERE user_id = ? AND is_active = 1
                ORDER BY updated_at DESC
                LIMIT 1
                """,
                (user_id,),
            ).fetchone()
        if not row:
            return None
        return _to_account(row)

    def list_gmail_accounts(self, user_id: str) -> list[LinkedMailboxAccount]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM gmail_accounts WHERE user_id = ? ORDER BY created_at",
                (user_id,),
            ).fetchall()
        return [_to_account(row) for row in rows]

    def update_access_token(
        self,
        *,
        account_id: str,
        access_token_encrypted: str,
        token_expiry: datetime,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE gmail_accounts
                SET access_token_encrypted = ?, token_expiry = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    access_token_encrypted,
                    token_expiry.isoformat(),
                    datetime.now(timezone.utc).isoformat(),
                    account_id,
                ),
            )


def _to_account(row: sqlite3.Row) -> LinkedMailboxAccount:
    data: Dict[str, Any] = dict(row)
    data["is_active"] = bool(data["is_active"])
    return LinkedMailboxAccount(**data)


__all__ = ["SQLiteStore", "UserNotFoundError"]
