"""HTTP-клиенты внешних сервисов."""

from .google_oauth import GoogleOAuthClient, GoogleOAuthError, TokenGrant
from .google_tasks import GoogleTasksAPIError, GoogleTasksClient

__all__ = [
    "GoogleOAuthClient",
    "GoogleOAuthError",
    "GoogleTasksAPIError",
    "GoogleTasksClient",
    "TokenGrant",
]
