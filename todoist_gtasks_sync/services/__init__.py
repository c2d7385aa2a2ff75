"""Сервисный слой приложения."""

from .credentials import CredentialProvider
from .kv_store import KeyValueStore, MemoryKeyValueStore, SQLiteKeyValueStore
from .mapping_store import TOMBSTONE, MappingStore
from .sync import CorruptedStateError, SyncStats, TaskSyncService
from .task_mapper import TaskMapper, translate

__all__ = [
    "CorruptedStateError",
    "CredentialProvider",
    "KeyValueStore",
    "MappingStore",
    "MemoryKeyValueStore",
    "SQLiteKeyValueStore",
    "SyncStats",
    "TOMBSTONE",
    "TaskMapper",
    "TaskSyncService",
    "translate",
]
