"""Доменные модели синхронизации."""

from .entities import (
    Credential,
    MappingState,
    RemoteTask,
    STATUS_COMPLETED,
    STATUS_NEEDS_ACTION,
    SyncAction,
    SyncResult,
    TaskMutation,
)
from .events import EventKind, TaskSnapshot, TodoistDue, WebhookEvent

__all__ = [
    "Credential",
    "EventKind",
    "MappingState",
    "RemoteTask",
    "STATUS_COMPLETED",
    "STATUS_NEEDS_ACTION",
    "SyncAction",
    "SyncResult",
    "TaskMutation",
    "TaskSnapshot",
    "TodoistDue",
    "WebhookEvent",
]
