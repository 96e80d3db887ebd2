"""
FastAPI dependencies for the Progress system.

Provides dependency injection for progress-related services.
"""

from typing import Optional

from okr.config import Settings, settings as default_settings
from okr.services.progress.progress_cache import ProgressCache


_settings: Optional[Settings] = None
_progress_cache: Optional[ProgressCache] = None


def init_progress_services(app_settings: Optional[Settings] = None) -> None:
    """
    Initialize progress services.

    Called once at application startup.

    Args:
        app_settings: Settings to use (defaults to the global settings)
    """
    global _settings, _progress_cache

    _settings = app_settings or default_settings
    _progress_cache = ProgressCache(
        ttl_seconds=_settings.PROGRESS_CACHE_TTL_SECONDS,
        max_entries=_settings.PROGRESS_CACHE_MAX_ENTRIES,
    )


def reset_progress_services() -> None:
    """Drop service instances (used on shutdown and in tests)."""
    global _settings, _progress_cache

    _settings = None
    _progress_cache = None


def get_settings() -> Settings:
    """Get the settings the progress services were initialized with."""
    if _settings is None:
        raise RuntimeError("Progress services not initialized.")
    return _settings


def get_progress_cache() -> ProgressCache:
    """Get progress cache instance."""
    if _progress_cache is None:
        raise RuntimeError("Progress services not initialized.")
    return _progress_cache
