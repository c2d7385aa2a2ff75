"""Получение access token Google для пользователя Todoist."""
from __future__ import annotations

import logging
from typing import Optional

from todoist_gtasks_sync.clients import GoogleOAuthClient, GoogleOAuthError
from todoist_gtasks_sync.models import Credential
from todoist_gtasks_sync.services.kv_store import KeyValueStore

LOGGER = logging.getLogger(__name__)


def access_token_key(user_id: str) -> str:
    return f"access-token:{user_id}"


def refresh_token_key(user_id: str) -> str:
    return f"refresh-token:{user_id}"


class CredentialProvider:
    """Кэш access token с ленивым обновлением по refresh token."""

    def __init__(self, kv: KeyValueStore, oauth_client: GoogleOAuthClient) -> None:
        self._kv = kv
        self._oauth = oauth_client

    def resolve(self, user_id: str) -> Optional[Credential]:
        """Возвращает учётные данные или ``None``, если пользователь не авторизован.

        Отозванный refresh token и временный сбой token endpoint не различаются:
        в обоих случаях событие считается неаутентифицированным.
        """
        access_token = self._kv.get(access_token_key(user_id))
        if access_token:
            LOGGER.debug("Access token пользователя %s взят из кэша", user_id)
            return Credential(access_token=access_token, user_id=user_id)

        refresh_token = self._kv.get(refresh_token_key(user_id))
        if not refresh_token:
            LOGGER.debug("Refresh token пользователя %s не найден", user_id)
            return None

        try:
            grant = self._oauth.refresh(refresh_token)
        except GoogleOAuthError as exc:
            LOGGER.error("Не удалось обновить access token пользователя %s: %s", user_id, exc)
            return None

        self._kv.put(access_token_key(user_id), grant.access_token, ttl=grant.expires_in)
        LOGGER.info("Access token пользователя %s обновлён по refresh token", user_id)
        return Credential(access_token=grant.access_token, user_id=user_id)

    def store_refresh_token(self, user_id: str, refresh_token: str) -> None:
        self._kv.put(refresh_token_key(user_id), refresh_token)
        self._kv.delete(access_token_key(user_id))


__all__ = ["CredentialProvider", "access_token_key", "refresh_token_key"]
