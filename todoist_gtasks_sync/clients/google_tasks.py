"""HTTP-клиент для Google Tasks API."""
from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests

from todoist_gtasks_sync.models import Credential, RemoteTask, TaskMutation

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://tasks.googleapis.com/tasks/v1"


class GoogleTasksAPIError(RuntimeError):
    """Ошибка Google Tasks API."""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(f"Ошибка Google Tasks {status_code} ({code}): {message}")
        self.status_code = status_code
        self.code = code
        self.message = message

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @classmethod
    def from_response(cls, response: requests.Response) -> "GoogleTasksAPIError":
        try:
            error = response.json().get("error") or {}
        except ValueError:
            error = {}
        if not isinstance(error, dict):
            error = {"message": str(error)}
        code = str(error.get("code") or response.status_code)
        message = error.get("message") or response.text
        return cls(response.status_code, code, message)


class GoogleTasksClient:
    """Минимальный клиент Google Tasks API для одного списка задач."""

    def __init__(
        self,
        list_id: str,
        credential: Credential,
        *,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._list_id = list_id
        self._credential = credential
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": "todoist-gtasks-sync/0.1",
                "Accept": "application/json",
            }
        )

    @property
    def list_id(self) -> str:
        return self._list_id

    def _tasks_url(self, task_id: Optional[str] = None) -> str:
        url = f"{self._base_url}/lists/{self._list_id}/tasks"
        return f"{url}/{task_id}" if task_id else url

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        headers = self._credential.sign(kwargs.pop("headers", None))
        response = self._session.request(method, url, headers=headers, timeout=30, **kwargs)
        if response.status_code >= 400:
            error = GoogleTasksAPIError.from_response(response)
            LOGGER.debug("%s %s → %s %s", method, url, error.code, error.message)
            raise error
        return response

    def create(self, mutation: TaskMutation) -> RemoteTask:
        payload = mutation.to_payload()
        LOGGER.debug("Создание задачи: %s", payload)
        response = self._request("POST", self._tasks_url(), json=payload)
        return RemoteTask.from_payload(response.json())

    def retrieve(self, task_id: str) -> RemoteTask:
        response = self._request("GET", self._tasks_url(task_id))
        return RemoteTask.from_payload(response.json())

    def update(self, task_id: str, mutation: TaskMutation) -> RemoteTask:
        payload = mutation.to_payload()
        payload["id"] = task_id
        LOGGER.debug("Обновление задачи %s: %s", task_id, payload)
        response = self._request("PUT", self._tasks_url(task_id), json=payload)
        return RemoteTask.from_payload(response.json())

    def delete(self, task_id: str) -> None:
        self._request("DELETE", self._tasks_url(task_id))

    def list_tasklists(self) -> List[Dict]:
        """Возвращает списки задач пользователя."""
        response = self._request("GET", f"{self._base_url}/users/@me/lists")
        return response.json().get("items", [])


__all__ = ["DEFAULT_BASE_URL", "GoogleTasksAPIError", "GoogleTasksClient"]
