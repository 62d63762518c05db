"""
FastAPI dependency exposing the application settings.
"""

from fastapi import Depends

from mailbox_linker.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning the process-wide settings.

    Kept separate from ``get_settings`` so tests can override it per app.
    """
    return get_settings()


SettingsDependency = Depends(get_app_settings)

__all__ = ["SettingsDependency", "get_app_settings"]
