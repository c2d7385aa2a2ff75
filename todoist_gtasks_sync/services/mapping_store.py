"""Хранилище соответствий идентификаторов задач Todoist и Google Tasks."""
from __future__ import annotations

from typing import Optional, Union

from todoist_gtasks_sync.models import MappingState
from todoist_gtasks_sync.services.kv_store import KeyValueStore

TOMBSTONE_VALUE = "__tombstone__"
DEFAULT_TOMBSTONE_TTL = 3600


class _Tombstone:
    _instance: Optional["_Tombstone"] = None

    def __new__(cls) -> "_Tombstone":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TOMBSTONE"


TOMBSTONE = _Tombstone()

MappingValue = Union[str, _Tombstone, None]


class MappingStore:
    """Соответствия Todoist → Google Tasks поверх хранилища ключ-значение.

    Значение ключа — либо идентификатор задачи Google, либо метка удаления.
    Метка живёт ``tombstone_ttl`` секунд, после чего ключ считается
    отсутствующим. Истечение срока ленивое: сразу после TTL метка ещё может
    читаться.
    """

    def __init__(self, kv: KeyValueStore, *, tombstone_ttl: int = DEFAULT_TOMBSTONE_TTL) -> None:
        self._kv = kv
        self._tombstone_ttl = tombstone_ttl

    @staticmethod
    def _key(source_id: str) -> str:
        return f"mapping:{source_id}"

    def get(self, source_id: str) -> MappingValue:
        value = self._kv.get(self._key(source_id))
        if value is None:
            return None
        if value == TOMBSTONE_VALUE:
            return TOMBSTONE
        return value

    def state(self, source_id: str) -> MappingState:
        return self.classify(self.get(source_id))

    @staticmethod
    def classify(value: MappingValue) -> MappingState:
        if value is None:
            return MappingState.ABSENT
        if value is TOMBSTONE:
            return MappingState.TOMBSTONE
        return MappingState.LIVE

    def put(self, source_id: str, target_id: str) -> None:
        if target_id == TOMBSTONE_VALUE:
            raise ValueError(f"Недопустимый идентификатор задачи Google: {target_id}")
        self._kv.put(self._key(source_id), target_id)

    def tombstone(self, source_id: str) -> None:
        self._kv.put(self._key(source_id), TOMBSTONE_VALUE, ttl=self._tombstone_ttl)

    def delete(self, source_id: str) -> None:
        self._kv.delete(self._key(source_id))


__all__ = ["MappingStore", "MappingValue", "TOMBSTONE", "TOMBSTONE_VALUE"]
