"""Construction of the application's record store."""
from __future__ import annotations

import logging
from typing import Optional

from .config import Settings, get_settings
from .storage import KeyValueSubstrate, MemorySubstrate, SqlSubstrate
from .store import RecordStore

logger = logging.getLogger(__name__)


def build_substrate(settings: Settings) -> KeyValueSubstrate:
    """Pick the persistence substrate named by STORAGE_BACKEND."""

    backend = settings.storage_backend.lower()
    if backend == "memory":
        return MemorySubstrate()
    if backend == "sql":
        return SqlSubstrate(settings.database_url)
    raise ValueError(f"Unknown STORAGE_BACKEND '{settings.storage_backend}'")


def build_store(settings: Optional[Settings] = None) -> RecordStore:
    """Create and initialise the store the API will share for its lifetime."""

    settings = settings or get_settings()
    store = RecordStore(
        build_substrate(settings),
        admin_email=settings.admin_email,
        admin_password=settings.admin_password,
    )
    store.initialize()
    logger.info("Record store ready (%s backend)", settings.storage_backend)
    return store
