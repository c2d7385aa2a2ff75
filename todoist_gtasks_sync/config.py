"""Загрузка и валидация конфигурации приложения."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_TASK_LIST_ID = "MDQxNjYxMjg3ODk5NzMwMTM2NzQ6MDow"


class GoogleOAuthCredentials(BaseModel):
    """Параметры OAuth-клиента Google."""

    client_id: str = Field(..., description="Идентификатор OAuth-клиента Google")
    client_secret: str = Field(..., description="Секрет OAuth-клиента Google")
    token_url: str = Field(
        "https://oauth2.googleapis.com/token",
        description="Адрес token endpoint для обмена refresh token",
    )


class GoogleTasksOptions(BaseModel):
    """Настройки подключения к Google Tasks."""

    base_url: str = Field("https://tasks.googleapis.com/tasks/v1", description="Базовый URL Google Tasks API")
    list_id: Optional[str] = Field(
        None,
        description="Список задач по умолчанию; если не задан, используется встроенный идентификатор",
    )
    per_user_lists: bool = Field(
        False,
        description="Брать список задач из хранилища для каждого пользователя Todoist отдельно",
    )


class SyncOptions(BaseModel):
    """Параметры синхронизации."""

    tombstone_ttl: int = Field(3600, ge=1, description="Время жизни метки удаления, секунды")
    validate_mappings: bool = Field(
        False,
        description="Проверять существование задачи Google перед обновлением",
    )
    dry_run: bool = Field(False, description="Если True, изменения в Google Tasks не выполняются")


class ServerOptions(BaseModel):
    """Параметры HTTP-сервера вебхуков."""

    host: str = Field("0.0.0.0", description="Адрес для прослушивания")
    port: int = Field(8787, description="Порт для прослушивания")
    route_prefix: str = Field("/todoist-webhook/", description="Префикс пути вебхука Todoist")

    @field_validator("route_prefix")
    @classmethod
    def _normalize_prefix(cls, value: str) -> str:
        return "/" + value.strip("/") + "/"


class AppConfig(BaseModel):
    """Корневая конфигурация приложения."""

    google_oauth: GoogleOAuthCredentials
    google_tasks: GoogleTasksOptions = Field(default_factory=GoogleTasksOptions)
    sync: SyncOptions = Field(default_factory=SyncOptions)
    server: ServerOptions = Field(default_factory=ServerOptions)
    state_db: Path = Field(Path(".sync_state.sqlite"), description="Путь к SQLite-базе ключ-значение")

    @field_validator("state_db", mode="before")
    @classmethod
    def _state_db_path(cls, value: Path | str) -> Path:
        return Path(value)

    @classmethod
    def load(cls, path: Path | str) -> "AppConfig":
        """Загружает конфигурацию из YAML-файла."""
        path = Path(path)
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ValueError(f"Конфигурация {path} некорректна: {exc}") from exc

    def default_list_id(self) -> str:
        """Список задач, если в хранилище не переопределён."""
        return self.google_tasks.list_id or DEFAULT_TASK_LIST_ID

    def ensure_runtime_dirs(self) -> None:
        """Создаёт недостающие служебные каталоги."""
        self.state_db.parent.mkdir(parents=True, exist_ok=True)


__all__ = [
    "AppConfig",
    "DEFAULT_TASK_LIST_ID",
    "GoogleOAuthCredentials",
    "GoogleTasksOptions",
    "ServerOptions",
    "SyncOptions",
]
