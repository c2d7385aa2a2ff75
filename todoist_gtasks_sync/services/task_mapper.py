"""Маппинг задач Todoist в изменения Google Tasks."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from dateutil import parser

from todoist_gtasks_sync.models import (
    STATUS_COMPLETED,
    STATUS_NEEDS_ACTION,
    TaskMutation,
    TaskSnapshot,
    WebhookEvent,
)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 в UTC с миллисекундами, как ожидает Google Tasks."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{moment.microsecond // 1000:03d}Z"


def format_due(value: str) -> str:
    # Google Tasks хранит только дату, время суток отбрасывается
    return f"{parser.parse(value).date().isoformat()}T00:00:00.000Z"


def translate(snapshot: TaskSnapshot, now: Optional[Clock] = None) -> TaskMutation:
    """Вычисляет изменение задачи Google по снимку задачи Todoist.

    Правила применяются по порядку, и выполненная задача переопределяет статус,
    выставленный по сроку. Текущее время используется, только если у выполненной
    задачи нет ``completed_at``.
    """
    mutation = TaskMutation(title=snapshot.content, notes=snapshot.description)
    if snapshot.due is not None:
        mutation.due = format_due(snapshot.due.date)
        mutation.status = STATUS_NEEDS_ACTION
    if snapshot.checked:
        if snapshot.completed_at:
            completed = parser.parse(snapshot.completed_at)
        else:
            completed = (now or _utc_now)()
        mutation.completed = format_timestamp(completed)
        mutation.status = STATUS_COMPLETED
    if snapshot.is_deleted:
        mutation.deleted = True
    return mutation


class TaskMapper:
    """Конвертация данных между вебхуком Todoist и Google Tasks API."""

    def __init__(self, *, clock: Optional[Clock] = None) -> None:
        self._clock = clock or _utc_now

    @staticmethod
    def map_event(payload: Dict) -> WebhookEvent:
        return WebhookEvent.model_validate(payload)

    def to_mutation(self, snapshot: TaskSnapshot) -> TaskMutation:
        return translate(snapshot, now=self._clock)

    def to_google_payload(self, snapshot: TaskSnapshot) -> Dict:
        return self.to_mutation(snapshot).to_payload()


__all__ = ["TaskMapper", "format_due", "format_timestamp", "translate"]
