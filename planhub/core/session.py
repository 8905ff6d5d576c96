"""
Session artifact invalidation.

A rejected credential must not linger in the caller's cookie jar. The access
layer marks the request with clear_tokens(); the error handlers then strip the
access and refresh cookies from whatever failure response is sent back.
"""
from starlette.requests import Request
from starlette.responses import Response

from planhub.core.config import settings

SESSION_INVALIDATED_ATTR = "session_invalidated"


def clear_tokens(request: Request) -> None:
    """Mark the session cookies of this request for deletion (idempotent)."""
    setattr(request.state, SESSION_INVALIDATED_ATTR, True)


def session_invalidated(request: Request) -> bool:
    return bool(getattr(request.state, SESSION_INVALIDATED_ATTR, False))


def apply_session_invalidation(request: Request, response: Response) -> Response:
    if session_invalidated(request):
        response.delete_cookie(settings.ACCESS_TOKEN_COOKIE)
        response.delete_cookie(settings.REFRESH_TOKEN_COOKIE)
    return response
