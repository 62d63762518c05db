"""Public schema exports."""

from .auth import AuthorizationUrlResponse, LinkedAccountStatus, OAuthCallbackQuery

__all__ = [
    "AuthorizationUrlResponse",
    "LinkedAccountStatus",
    "OAuthCallbackQuery",
]
