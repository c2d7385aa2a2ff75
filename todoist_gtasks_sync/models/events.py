"""Входящие события вебхука Todoist."""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from dateutil import parser
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class EventKind(str, Enum):
    """Классы событий, различаемые оркестратором."""

    ADDED = "added"
    DELETED = "deleted"
    OTHER = "other"


def _parseable_datetime(value: str) -> str:
    try:
        parser.parse(value)
    except (ValueError, OverflowError) as exc:
        raise ValueError(f"некорректная дата: {value!r}") from exc
    return value


ADDED_EVENTS = {"item:added"}
DELETED_EVENTS = {"item:deleted"}


class TodoistDue(BaseModel):
    """Срок задачи Todoist."""

    model_config = ConfigDict(extra="ignore")

    date: str
    is_recurring: bool = False

    @field_validator("date")
    @classmethod
    def _check_date(cls, value: str) -> str:
        return _parseable_datetime(value)


class TaskSnapshot(BaseModel):
    """Состояние задачи Todoist на момент события (не дельта)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    checked: bool = False
    content: str = ""
    description: str = ""
    due: Optional[TodoistDue] = None
    completed_at: Optional[str] = None
    is_deleted: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> str:
        if value is None or value == "":
            raise ValueError("идентификатор задачи обязателен")
        return str(value)

    @field_validator("content", "description", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("completed_at")
    @classmethod
    def _check_completed_at(cls, value: Optional[str]) -> Optional[str]:
        # пустая строка означает отсутствие отметки о выполнении
        if not value:
            return None
        return _parseable_datetime(value)


class WebhookEvent(BaseModel):
    """Тело запроса вебхука Todoist."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    event_name: str
    user_id: str
    task: TaskSnapshot = Field(validation_alias=AliasChoices("event_data", "task"))

    @field_validator("user_id", mode="before")
    @classmethod
    def _coerce_user_id(cls, value: Any) -> str:
        return str(value)

    @property
    def kind(self) -> EventKind:
        if self.event_name in ADDED_EVENTS:
            return EventKind.ADDED
        if self.event_name in DELETED_EVENTS:
            return EventKind.DELETED
        return EventKind.OTHER


__all__ = ["EventKind", "TaskSnapshot", "TodoistDue", "WebhookEvent"]
