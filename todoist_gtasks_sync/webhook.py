"""HTTP-приёмник вебхуков Todoist."""
from __future__ import annotations

import logging
from typing import Optional

import requests
from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from todoist_gtasks_sync.clients import GoogleTasksAPIError
from todoist_gtasks_sync.models import SyncResult, WebhookEvent
from todoist_gtasks_sync.services.sync import CorruptedStateError, TaskSyncService

LOGGER = logging.getLogger(__name__)

DEFAULT_ROUTE_PREFIX = "/todoist-webhook/"
ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def is_webhook_route(request: Request, route_prefix: str = DEFAULT_ROUTE_PREFIX) -> bool:
    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    return (
        request.method == "POST"
        and content_type == "application/json"
        and request.url.path.startswith(route_prefix)
    )


def handle_webhook(service: TaskSyncService, body: bytes) -> Optional[SyncResult]:
    """Обрабатывает тело вебхука; ошибки только логируются.

    Todoist повторяет доставку при любом ответе, отличном от 200, поэтому
    сбой обработки события не должен выходить за пределы этой функции.
    """
    try:
        event = WebhookEvent.model_validate_json(body)
    except ValidationError as exc:
        LOGGER.error("Некорректное тело вебхука: %s", exc)
        return None

    LOGGER.debug("Событие %s пользователя %s: %s", event.event_name, event.user_id, event.task)
    try:
        result = service.process(event)
    except GoogleTasksAPIError as exc:
        LOGGER.error("Событие %s для задачи %s не применено: %s", event.event_name, event.task.id, exc)
    except CorruptedStateError as exc:
        LOGGER.error("Событие %s для задачи %s не применено: %s", event.event_name, event.task.id, exc)
    except requests.RequestException:
        LOGGER.exception("Сетевая ошибка при обработке события %s для задачи %s", event.event_name, event.task.id)
    except Exception:
        LOGGER.exception("Непредвиденная ошибка при обработке события %s для задачи %s", event.event_name, event.task.id)
    else:
        LOGGER.info(
            "Событие %s для задачи %s: %s (%s)",
            event.event_name,
            result.source_id,
            result.action.value,
            result.reason,
        )
        return result
    return None


def create_app(service: TaskSyncService, *, route_prefix: str = DEFAULT_ROUTE_PREFIX) -> FastAPI:
    app = FastAPI(title="todoist-gtasks-sync", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.service = service

    @app.get("/healthz")
    def healthz() -> dict:
        return {"status": "ok"}

    @app.api_route("/{path:path}", methods=ALL_METHODS)
    async def dispatch(request: Request, path: str) -> Response:
        if not is_webhook_route(request, route_prefix):
            return PlainTextResponse("Not found", status_code=404)
        body = await request.body()
        await run_in_threadpool(handle_webhook, service, body)
        return Response(status_code=200)

    return app


__all__ = ["create_app", "handle_webhook", "is_webhook_route"]
