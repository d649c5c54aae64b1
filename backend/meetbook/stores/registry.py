from __future__ import annotations

from meetbook.core.config import Settings
from meetbook.stores.base import SchedulingStore
from meetbook.stores.json_file import JsonFileStore
from meetbook.stores.sql import SqlStore


def resolve_store(settings: Settings) -> SchedulingStore:
    """Build the persistence adapter named by ``STORAGE_BACKEND``."""
    if settings.storage_backend == "json":
        return JsonFileStore(settings.json_data_dir)
    return SqlStore(
        settings.database_url,
        echo=settings.database_echo,
        auto_create_tables=settings.auto_create_tables,
    )
