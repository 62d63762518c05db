"""
FastAPI routes for Gmail mailbox linking.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import RedirectResponse

from mailbox_linker.dependencies import (
    get_app_settings,
    get_gmail_oauth_client,
    get_gmail_token_service,
    get_mailbox_account_linker,
    get_sqlite_store,
)
from mailbox_linker.schemas import (
    AuthorizationUrlResponse,
    LinkedAccountStatus,
    OAuthCallbackQuery,
)
from mailbox_linker.services.account_linker import CallbackOutcome

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get("/auth/gmail", status_code=HTTPStatus.OK, response_model=None)
async def start_gmail_oauth_flow(
    request: Request,
    oauth_client: Annotated[Any, Depends(get_gmail_oauth_client)],
    user_id: str = Query(
        ..., description="Auth provider identifier of the signed-in user."
    ),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the Google consent screen.",
    ),
) -> AuthorizationUrlResponse | Response:
    """
    Kick off mailbox linking; the user identifier travels as the OAuth state.
    """
    authorization_url = oauth_client.build_authorization_url(state=user_id)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return AuthorizationUrlResponse(authorization_url=authorization_url, state=user_id)


@router.get("/auth/gmail/callback")
async def handle_gmail_oauth_callback(
    request: Request,
    linker: Annotated[Any, Depends(get_mailbox_account_linker)],
    settings: Annotated[Any, Depends(get_app_settings)],
    code: str | None = Query(default=None, description="Authorization code from Google."),
    state: str | None = Query(default=None, description="OAuth state (user identifier)."),
    error: str | None = Query(default=None, description="Error reported by Google."),
) -> RedirectResponse:
    """Complete the OAuth exchange and send the browser back to settings."""
    query = OAuthCallbackQuery(code=code, state=state, error=error)
    outcome = await linker.handle_callback(query)
    return RedirectResponse(
        url=_settings_redirect_url(request, settings, outcome),
        status_code=HTTPStatus.TEMPORARY_REDIRECT,
    )


@router.get("/gmail/account", response_model=LinkedAccountStatus)
async def get_linked_gmail_account(
    store: Annotated[Any, Depends(get_sqlite_store)],
    token_service: Annotated[Any, Depends(get_gmail_token_service)],
    user_id: str = Query(
        ..., description="Auth provider identifier of the signed-in user."
    ),
) -> LinkedAccountStatus:
    """Report the user's active mailbox link without exposing tokens."""
    user = store.find_user_by_auth_provider_id(user_id)
    if user is None:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail="User not found.")

    account = token_service.get_user_account(user.id)
    if account is None:
        return LinkedAccountStatus(connected=False)

    return LinkedAccountStatus(
        connected=True,
        email=account.email,
        token_expiry=account.token_expiry,
        history_id=account.history_id,
    )


def _settings_redirect_url(request: Request, settings: Any, outcome: CallbackOutcome) -> str:
    base_url = str(settings.frontend_base_url or request.base_url).rstrip("/")
    path = "/" + settings.settings_path.lstrip("/")
    return f"{base_url}{path}?{urlencode(outcome.query_params())}"
