"""
FastAPI application entrypoint for the Gmail mailbox linker.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from mailbox_linker.api.routes import router as api_router
from mailbox_linker.core.config import get_settings
from mailbox_linker.core.logging import configure_logging
from mailbox_linker.dependencies import get_sqlite_store, get_token_cipher_service


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the store and token cipher up front.

    A bad ``DATABASE_PATH`` or an empty encryption secret stops the server
    from starting instead of failing the OAuth callback with a 500.
    """
    get_sqlite_store()
    get_token_cipher_service()
    yield


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Gmail Mailbox Linker",
        version="0.1.0",
        description="OAuth linking of Gmail mailboxes to product accounts.",
        lifespan=lifespan,
    )
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "lifespan"]
