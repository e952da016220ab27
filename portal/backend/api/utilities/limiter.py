# portal/backend/api/utilities/limiter.py
from uuid import UUID

from fastapi import Request

from slowapi import Limiter
from slowapi.util import get_remote_address

from ...config.config import settings


def get_limiter_key(request: Request) -> str:
    """
    Returns the rate-limit key for a request.

    Requests carrying a session-id bearer are limited per session, anything else
    per client address. Routes reachable without logging in (login, token,
    registration) pass ``key_func=get_remote_address`` explicitly so a made-up
    bearer cannot buy a fresh budget.
    """
    auth_header = request.headers.get("authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        token = auth_header.split(" ", 1)[1].strip()
        try:
            return f"session:{UUID(token)}"
        except ValueError:
            pass
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_limiter_key,
    storage_uri=settings.RATE_LIMITER_STORAGE_URL,
    enabled=settings.RATE_LIMIT_ENABLED,
)
