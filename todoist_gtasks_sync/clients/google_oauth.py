"""HTTP-клиент token endpoint Google OAuth."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests

from todoist_gtasks_sync.config import GoogleOAuthCredentials


class GoogleOAuthError(RuntimeError):
    """Ошибка обмена refresh token."""


@dataclass(slots=True)
class TokenGrant:
    """Ответ token endpoint."""

    access_token: str
    expires_in: int


class GoogleOAuthClient:
    """Обмен refresh token на access token."""

    def __init__(self, config: GoogleOAuthCredentials, session: Optional[requests.Session] = None) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._session.headers.update({"User-Agent": "todoist-gtasks-sync/0.1"})

    def refresh(self, refresh_token: str) -> TokenGrant:
        data = {
            "client_id": self._config.client_id,
            "client_secret": self._config.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }
        try:
            response = self._session.post(self._config.token_url, data=data, timeout=30)
        except requests.RequestException as exc:
            raise GoogleOAuthError(f"Не удалось обратиться к {self._config.token_url}: {exc}") from exc
        if response.status_code >= 400:
            raise GoogleOAuthError(
                f"Ошибка обмена refresh token {response.status_code}: {response.text}"
            )
        try:
            payload = response.json()
            return TokenGrant(access_token=payload["access_token"], expires_in=int(payload["expires_in"]))
        except (KeyError, TypeError, ValueError) as exc:
            raise GoogleOAuthError(f"Некорректный ответ token endpoint: {response.text[:200]!r}") from exc


__all__ = ["GoogleOAuthClient", "GoogleOAuthError", "TokenGrant"]
