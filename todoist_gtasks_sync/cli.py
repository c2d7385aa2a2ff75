"""CLI-интерфейс сервиса синхронизации."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from pathlib import Path

import requests
import typer
import uvicorn
from pydantic import ValidationError
from tqdm import tqdm

from todoist_gtasks_sync.clients import GoogleOAuthClient, GoogleTasksAPIError, GoogleTasksClient
from todoist_gtasks_sync.config import AppConfig
from todoist_gtasks_sync.models import Credential, WebhookEvent
from todoist_gtasks_sync.services.credentials import CredentialProvider
from todoist_gtasks_sync.services.kv_store import SQLiteKeyValueStore
from todoist_gtasks_sync.services.mapping_store import MappingStore
from todoist_gtasks_sync.services.sync import CorruptedStateError, SyncStats, TaskSyncService, task_list_key
from todoist_gtasks_sync.webhook import create_app

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

app = typer.Typer(help="Синхронизация задач Todoist → Google Tasks")


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def load_config(config_path: Path) -> AppConfig:
    config = AppConfig.load(config_path)
    config.ensure_runtime_dirs()
    return config


def build_service(config: AppConfig, kv: SQLiteKeyValueStore) -> TaskSyncService:
    credentials = CredentialProvider(kv, GoogleOAuthClient(config.google_oauth))
    mapping_store = MappingStore(kv, tombstone_ttl=config.sync.tombstone_ttl)

    def client_factory(list_id: str, credential: Credential) -> GoogleTasksClient:
        return GoogleTasksClient(list_id, credential, base_url=config.google_tasks.base_url)

    return TaskSyncService(config, credentials, mapping_store, kv, client_factory)


@app.command("serve")
def serve(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c", help="Путь к YAML конфигурации"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True, help="Уровень логирования"),
) -> None:
    """Запускает HTTP-сервер приёма вебхуков Todoist."""
    configure_logging(verbosity)
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        web_app = create_app(build_service(config, store), route_prefix=config.server.route_prefix)
        uvicorn.run(web_app, host=config.server.host, port=config.server.port, log_config=None)
    finally:
        store.close()


@app.command("replay")
def replay(
    events_path: Path = typer.Argument(..., help="Файл JSON Lines с телами вебхуков"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Повторно прогоняет сохранённые события через синхронизацию."""
    configure_logging(verbosity)
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    stats = SyncStats()
    try:
        service = build_service(config, store)
        lines = [line for line in events_path.read_text(encoding="utf-8").splitlines() if line.strip()]
        for line in tqdm(lines, desc="События"):
            try:
                result = service.process(WebhookEvent.model_validate_json(line))
            except (ValidationError, GoogleTasksAPIError, CorruptedStateError, requests.RequestException) as exc:
                logging.getLogger(__name__).error("Событие не применено: %s", exc)
                stats.failed += 1
                continue
            stats.record(result)
        typer.echo(json.dumps(asdict(stats), indent=2, ensure_ascii=False))
    finally:
        store.close()


@app.command("set-refresh-token")
def set_refresh_token(
    user_id: str = typer.Argument(..., help="Идентификатор пользователя Todoist"),
    refresh_token: str = typer.Argument(..., help="Refresh token Google"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
) -> None:
    """Сохраняет refresh token пользователя."""
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        CredentialProvider(store, GoogleOAuthClient(config.google_oauth)).store_refresh_token(user_id, refresh_token)
        typer.echo(f"Refresh token пользователя {user_id} сохранён")
    finally:
        store.close()


@app.command("set-task-list")
def set_task_list(
    user_id: str = typer.Argument(..., help="Идентификатор пользователя Todoist"),
    list_id: str = typer.Argument(..., help="Идентификатор списка Google Tasks"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
) -> None:
    """Назначает пользователю список задач Google."""
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        store.put(task_list_key(user_id), list_id)
        typer.echo(f"Список {list_id} назначен пользователю {user_id}")
    finally:
        store.close()


@app.command("purge-expired")
def purge_expired(
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
) -> None:
    """Удаляет просроченные записи из хранилища."""
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        typer.echo(f"Удалено записей: {store.purge_expired()}")
    finally:
        store.close()


@app.command("verify")
def verify(
    user_id: str = typer.Argument(..., help="Идентификатор пользователя Todoist"),
    config_path: Path = typer.Option(Path("config.yaml"), "--config", "-c"),
    verbosity: int = typer.Option(0, "--verbose", "-v", count=True),
) -> None:
    """Проверяет авторизацию пользователя и доступ к Google Tasks."""
    configure_logging(verbosity)
    config = load_config(config_path)
    store = SQLiteKeyValueStore(config.state_db)
    try:
        service = build_service(config, store)
        credential = CredentialProvider(store, GoogleOAuthClient(config.google_oauth)).resolve(user_id)
        if credential is None:
            typer.echo(f"Пользователь {user_id} не авторизован", err=True)
            raise typer.Exit(code=1)
        list_id = service.resolve_list_id(user_id)
        client = GoogleTasksClient(list_id, credential, base_url=config.google_tasks.base_url)
        lists = client.list_tasklists()
        typer.echo(f"Соединение успешно, списков задач: {len(lists)}, целевой список: {list_id}")
    finally:
        store.close()


if __name__ == "__main__":
    app()
