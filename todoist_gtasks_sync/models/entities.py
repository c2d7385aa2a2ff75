"""Определения доменных сущностей."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

STATUS_NEEDS_ACTION = "needsAction"
STATUS_COMPLETED = "completed"


@dataclass(slots=True)
class Credential:
    """Действующий access token пользователя Todoist в Google."""

    access_token: str
    user_id: str

    def sign(self, headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        signed = dict(headers or {})
        signed["Authorization"] = f"Bearer {self.access_token}"
        return signed


@dataclass(slots=True)
class TaskMutation:
    """Изменение задачи Google Tasks, вычисленное из снимка Todoist."""

    title: str
    notes: str
    due: Optional[str] = None
    status: Optional[str] = None
    completed: Optional[str] = None
    deleted: Optional[bool] = None

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": self.title, "notes": self.notes}
        for name in ("due", "status", "completed", "deleted"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload


@dataclass(slots=True)
class RemoteTask:
    """Задача Google Tasks в том виде, в каком её вернул API."""

    id: str
    title: str
    status: str
    notes: Optional[str] = None
    due: Optional[str] = None
    completed: Optional[str] = None
    deleted: bool = False
    etag: Optional[str] = None
    updated: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "RemoteTask":
        return cls(
            id=str(payload["id"]),
            title=payload.get("title") or "",
            status=payload.get("status") or STATUS_NEEDS_ACTION,
            notes=payload.get("notes"),
            due=payload.get("due"),
            completed=payload.get("completed"),
            deleted=bool(payload.get("deleted", False)),
            etag=payload.get("etag"),
            updated=payload.get("updated"),
            raw=payload,
        )


class MappingState(str, Enum):
    """Состояние соответствия задачи Todoist."""

    ABSENT = "absent"
    TOMBSTONE = "tombstone"
    LIVE = "live"


class SyncAction(str, Enum):
    """Единственное изменение, выбранное для события."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    IGNORE = "ignore"


@dataclass(slots=True)
class SyncResult:
    """Итог обработки одного события."""

    event_name: str
    source_id: str
    action: SyncAction
    target_id: Optional[str] = None
    reason: Optional[str] = None


__all__ = [
    "Credential",
    "MappingState",
    "RemoteTask",
    "STATUS_COMPLETED",
    "STATUS_NEEDS_ACTION",
    "SyncAction",
    "SyncResult",
    "TaskMutation",
]
