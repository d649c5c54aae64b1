from meetbook.stores.base import SchedulingStore
from meetbook.stores.json_file import JsonFileStore
from meetbook.stores.registry import resolve_store
from meetbook.stores.sql import SqlStore

__all__ = [
    "SchedulingStore",
    "JsonFileStore",
    "SqlStore",
    "resolve_store",
]
