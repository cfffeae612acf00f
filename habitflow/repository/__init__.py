"""Repository package: one habit store interface, two backends."""

from __future__ import annotations

import logging

from ..settings import STORAGE_LOCAL, STORAGE_SUPABASE, Settings
from .base import (
    HabitNotFoundError, HabitRepository, PartialSessionError, RepositoryError,
)
from .local import LocalHabitRepository

logger = logging.getLogger(__name__)


def build_repository(settings: Settings) -> HabitRepository:
    """Create the repository named by ``settings.storage_backend``.

    The local backend is bound to ``settings.database_url`` and its tables
    are created on the spot.
    """
    backend = (settings.storage_backend or STORAGE_LOCAL).lower()
    if backend == STORAGE_SUPABASE:
        from .remote import SupabaseHabitRepository

        logger.info("Using Supabase storage at %s", settings.supabase_url)
        return SupabaseHabitRepository.from_credentials(
            settings.supabase_url,
            settings.supabase_key,
            user_id=settings.supabase_user_id,
        )
    if backend == STORAGE_LOCAL:
        from ..database.db import DEFAULT_DATABASE_URL, configure_engine, init_db

        if settings.database_url and settings.database_url != DEFAULT_DATABASE_URL:
            configure_engine(settings.database_url)
        init_db()
        logger.info("Using local storage")
        return LocalHabitRepository()
    raise ValueError(f"Unknown storage backend: {settings.storage_backend!r}")


__all__ = [
    "build_repository",
    "HabitRepository",
    "HabitNotFoundError",
    "LocalHabitRepository",
    "PartialSessionError",
    "RepositoryError",
]
