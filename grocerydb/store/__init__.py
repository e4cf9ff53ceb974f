"""Storage backends and the startup-time backend selection."""

import logging

from ..config import Settings, StoreType
from .base import Storage
from .json_store import JsonStore
from .sql import SqlStore

logger = logging.getLogger(__name__)

__all__ = ["Storage", "JsonStore", "SqlStore", "open_store"]


def open_store(settings: Settings) -> Storage:
    """Open the backend named by ``settings.store_type``.

    A relational store is upgraded to the current schema before it is returned.
    """
    logger.info(f"Opening {settings.store_type.value} store")
    if settings.store_type is StoreType.JSON:
        return JsonStore.from_settings(settings)
    store = SqlStore.from_settings(settings)
    try:
        store.init_schema()
    except Exception:
        store.close()
        raise
    return store
