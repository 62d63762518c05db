"""
Domain models for linked Gmail mailboxes and the users that own them.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class InternalUser(BaseModel):
    """A product user, resolved by the identifier of the primary auth provider."""

    id: str
    auth_provider_id: str
    email: Optional[str] = None
    full_name: Optional[str] = None


class LinkedMailboxAccount(BaseModel):
    """Represents a row of the ``gmail_accounts`` table.

    Tokens are held encrypted; use the token cipher to read them.
    """

    id: str
    user_id: str
    email: str
    access_token_encrypted: str
    refresh_token_encrypted: Optional[str] = None
    token_expiry: datetime
    history_id: Optional[str] = None
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class OAuthExchangeResult(BaseModel):
    """Tokens returned by the authorization-code grant."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = Field(..., description="Access token lifetime in seconds.")
    token_type: str = "Bearer"


class GmailProfile(BaseModel):
    """Subset of ``users.getProfile`` used for linking."""

    model_config = ConfigDict(
        populate_by_name=True, extra="ignore", coerce_numbers_to_str=True
    )

    email_address: str = Field(..., alias="emailAddress")
    history_id: Optional[str] = Field(None, alias="historyId")


__all__ = [
    "GmailProfile",
    "InternalUser",
    "LinkedMailboxAccount",
    "OAuthExchangeResult",
]
