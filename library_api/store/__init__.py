import logging
from typing import Optional

from .base import InventoryStore, StoreSession
from .csv_store import CsvStore
from .sql_store import SqlStore

logger = logging.getLogger(__name__)


def create_store(settings) -> InventoryStore:
    """Build the store adapter named by ``settings.store_backend``."""
    backend = settings.store_backend.lower()
    if backend == "csv":
        store = CsvStore(settings.csv_dir, timeout=settings.store_timeout_seconds)
    elif backend == "sql":
        from library_api.database import build_database_url
        store = SqlStore(
            build_database_url(settings),
            timeout=settings.store_timeout_seconds,
            ssl_mode=settings.db_ssl_mode,
        )
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend!r}")
    logger.info(f"Using {store!r}")
    return store


def create_fallback_store(settings) -> Optional[InventoryStore]:
    """CSV store used for reads when the SQL store is down, if enabled."""
    if settings.store_backend.lower() == "sql" and settings.csv_fallback:
        return CsvStore(settings.csv_dir, timeout=settings.store_timeout_seconds)
    return None


__all__ = [
    "InventoryStore",
    "StoreSession",
    "CsvStore",
    "SqlStore",
    "create_store",
    "create_fallback_store",
]
