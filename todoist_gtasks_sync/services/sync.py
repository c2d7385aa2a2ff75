"""Бизнес-логика синхронизации задач."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from todoist_gtasks_sync.clients import GoogleTasksAPIError, GoogleTasksClient
from todoist_gtasks_sync.config import AppConfig
from todoist_gtasks_sync.models import (
    Credential,
    EventKind,
    MappingState,
    SyncAction,
    SyncResult,
    WebhookEvent,
)
from todoist_gtasks_sync.services.credentials import CredentialProvider
from todoist_gtasks_sync.services.kv_store import KeyValueStore
from todoist_gtasks_sync.services.mapping_store import TOMBSTONE, MappingStore
from todoist_gtasks_sync.services.task_mapper import TaskMapper

LOGGER = logging.getLogger(__name__)

LIST_KEY = "LIST_KEY"

ClientFactory = Callable[[str, Credential], GoogleTasksClient]

# Метка удаления сильнее любого события, кроме item:added: поздние события по
# удалённой задаче считаются устаревшими повторами, а не воскрешением.
DECISIONS: Dict[Tuple[EventKind, MappingState], Tuple[SyncAction, str]] = {
    (EventKind.ADDED, MappingState.ABSENT): (SyncAction.CREATE, "added"),
    (EventKind.ADDED, MappingState.TOMBSTONE): (SyncAction.CREATE, "added"),
    (EventKind.ADDED, MappingState.LIVE): (SyncAction.CREATE, "added"),
    (EventKind.DELETED, MappingState.ABSENT): (SyncAction.IGNORE, "nothing_to_delete"),
    (EventKind.DELETED, MappingState.TOMBSTONE): (SyncAction.IGNORE, "duplicate_delete"),
    (EventKind.DELETED, MappingState.LIVE): (SyncAction.DELETE, "deleted"),
    (EventKind.OTHER, MappingState.ABSENT): (SyncAction.CREATE, "unmapped"),
    (EventKind.OTHER, MappingState.TOMBSTONE): (SyncAction.IGNORE, "stale_after_delete"),
    (EventKind.OTHER, MappingState.LIVE): (SyncAction.UPDATE, "mapped"),
}


class CorruptedStateError(RuntimeError):
    """В хранилище нет обязательной служебной записи."""


def decide(kind: EventKind, state: MappingState) -> Tuple[SyncAction, str]:
    return DECISIONS[(kind, state)]


@dataclass
class SyncStats:
    """Счётчики результатов по пачке событий."""

    created: int = 0
    updated: int = 0
    deleted: int = 0
    ignored: int = 0
    failed: int = 0

    def record(self, result: SyncResult) -> None:
        if result.action is SyncAction.CREATE:
            self.created += 1
        elif result.action is SyncAction.UPDATE:
            self.updated += 1
        elif result.action is SyncAction.DELETE:
            self.deleted += 1
        else:
            self.ignored += 1


class TaskSyncService:
    """Оркестратор: одно событие Todoist → не более одного изменения в Google Tasks."""

    def __init__(
        self,
        config: AppConfig,
        credential_provider: CredentialProvider,
        mapping_store: MappingStore,
        kv: KeyValueStore,
        client_factory: ClientFactory,
        task_mapper: Optional[TaskMapper] = None,
    ) -> None:
        self._config = config
        self._credentials = credential_provider
        self._mappings = mapping_store
        self._kv = kv
        self._client_factory = client_factory
        self._mapper = task_mapper or TaskMapper()

    # region public API
    def process(self, event: WebhookEvent) -> SyncResult:
        """Полный цикл обработки события вебхука.

        Ошибки Google Tasks API и ``CorruptedStateError`` пробрасываются
        вызывающему; повторов нет.
        """
        credential = self._credentials.resolve(event.user_id)
        if credential is None:
            LOGGER.info("Пользователь Todoist %s не авторизован, событие пропущено", event.user_id)
            return SyncResult(
                event_name=event.event_name,
                source_id=event.task.id,
                action=SyncAction.IGNORE,
                reason="unauthenticated",
            )
        list_id = self.resolve_list_id(event.user_id)
        client = self._client_factory(list_id, credential)
        return self.apply(event, client)

    def apply(self, event: WebhookEvent, client: GoogleTasksClient) -> SyncResult:
        source_id = event.task.id
        kind = event.kind
        if kind is EventKind.ADDED:
            # для item:added соответствие не читается: создание безусловное
            target = None
            state = MappingState.ABSENT
        else:
            target = self._mappings.get(source_id)
            state = MappingStore.classify(target)
        action, reason = decide(kind, state)
        LOGGER.debug(
            "Событие %s для задачи %s: соответствие %s → %s",
            event.event_name,
            source_id,
            target if target is not TOMBSTONE else "tombstone",
            action.value,
        )
        target_id = target if state is MappingState.LIVE else None

        if self._config.sync.dry_run:
            LOGGER.info("[DRY-RUN] %s задачи %s (%s)", action.value, source_id, reason)
            return SyncResult(event.event_name, source_id, action, target_id, reason)

        if action is SyncAction.UPDATE and self._config.sync.validate_mappings:
            if not self._mapping_is_valid(client, source_id, target_id):
                action, reason, target_id = SyncAction.CREATE, "stale_mapping", None

        if action is SyncAction.CREATE:
            target_id = self._create(client, event)
        elif action is SyncAction.UPDATE:
            LOGGER.info("Обновление задачи %s → %s", source_id, target_id)
            client.update(target_id, self._mapper.to_mutation(event.task))
        elif action is SyncAction.DELETE:
            LOGGER.info("Удаление задачи %s → %s", source_id, target_id)
            client.delete(target_id)
            self._mappings.tombstone(source_id)
        else:
            LOGGER.info("Событие %s для задачи %s пропущено (%s)", event.event_name, source_id, reason)
        return SyncResult(event.event_name, source_id, action, target_id, reason)

    def resolve_list_id(self, user_id: str) -> str:
        if self._config.google_tasks.per_user_lists:
            list_id = self._kv.get(task_list_key(user_id))
            if not list_id:
                raise CorruptedStateError(f"Для пользователя {user_id} не задан список задач Google")
            return list_id
        return self._kv.get(LIST_KEY) or self._config.default_list_id()

    # endregion

    # region sync helpers
    def _create(self, client: GoogleTasksClient, event: WebhookEvent) -> str:
        source_id = event.task.id
        LOGGER.info("Создание задачи для %s", source_id)
        remote = client.create(self._mapper.to_mutation(event.task))
        self._mappings.put(source_id, remote.id)
        LOGGER.debug("Соответствие %s → %s сохранено", source_id, remote.id)
        return remote.id

    def _mapping_is_valid(self, client: GoogleTasksClient, source_id: str, target_id: str) -> bool:
        # любая ошибка проверки, а не только 404, считается устаревшим соответствием
        try:
            client.retrieve(target_id)
        except GoogleTasksAPIError as exc:
            LOGGER.warning(
                "Соответствие %s → %s устарело (%s), задача будет создана заново",
                source_id,
                target_id,
                exc.code,
            )
            self._mappings.delete(source_id)
            return False
        return True

    # endregion


def task_list_key(user_id: str) -> str:
    return f"task-list:{user_id}"


__all__ = [
    "CorruptedStateError",
    "DECISIONS",
    "LIST_KEY",
    "SyncStats",
    "TaskSyncService",
    "decide",
    "task_list_key",
]
