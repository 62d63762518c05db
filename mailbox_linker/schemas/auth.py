"""Schemas related to the Gmail OAuth flow."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class OAuthCallbackQuery(BaseModel):
    """Query parameters Google appends to the redirect URI."""

    code: Optional[str] = Field(None, description="Single-use authorization code.")
    state: Optional[str] = Field(
        None, description="Auth provider identifier of the user who started linking."
    )
    error: Optional[str] = Field(
        None, description="Error reported by Google, e.g. access_denied."
    )


class AuthorizationUrlResponse(BaseModel):
    authorization_url: str
    state: str


class LinkedAccountStatus(BaseModel):
    """Public view of a user's linked mailbox; never carries tokens."""

    connected: bool
    email: Optional[str] = None
    token_expiry: Optional[datetime] = None
    history_id: Optional[str] = None


__all__ = ["AuthorizationUrlResponse", "LinkedAccountStatus", "OAuthCallbackQuery"]
