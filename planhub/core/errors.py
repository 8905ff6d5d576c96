"""Error taxonomy and normalized error handlers."""

import logging
from typing import Optional, Sequence
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from planhub.core.logging import get_request_id
from planhub.core.session import apply_session_invalidation


class AppError(Exception):
    code = "app_error"
    status_code = 500
    default_message = "Application error"

    def __init__(self, message: Optional[str] = None, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        message = message or self.default_message
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class UnauthenticatedError(AppError):
    """No credential, or one that failed verification."""
    code = "unauthenticated"
    status_code = 401
    default_message = "Unauthenticated"


class UnauthorizedError(AppError):
    """Credential rejected by an access check, or insufficient privilege."""
    code = "unauthorized"
    status_code = 401
    default_message = "Unauthorized"


class NotFoundError(AppError, LookupError):
    code = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidRequestError(AppError, ValueError):
    code = "bad_request"
    status_code = 400
    default_message = "Invalid request"


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


def _respond(request: Request, status_code: int, payload: dict, rid: str) -> JSONResponse:
    response = JSONResponse(status_code=status_code, content=payload)
    response.headers["x-request-id"] = rid
    return apply_session_invalidation(request, response)


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("planhub")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    return _respond(request, exc.status_code, payload, rid)


def validation_message(errors: Sequence[dict]) -> str:
    """Render the first validation error as `field.path: msg`, or just `msg`."""
    first = errors[0] if errors else {}
    # Only named fields form a location; list indexes and offsets do not
    location = ".".join(
        part for part in first.get("loc", ()) if isinstance(part, str) and part not in ("body", "query")
    )
    msg = first.get("msg") or "Invalid input"
    return f"{location}: {msg}" if location else msg


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    message = validation_message(exc.errors())
    payload = _error_payload(InvalidRequestError.code, message, rid)
    logging.getLogger("planhub").warning(
        "request.invalid",
        extra={"request_id": rid, "error_code": InvalidRequestError.code, "status": 400},
    )
    return _respond(request, 400, payload, rid)


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("planhub")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    return _respond(request, exc.status_code, payload, rid)


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("planhub")
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    return _respond(request, 500, payload, rid)
