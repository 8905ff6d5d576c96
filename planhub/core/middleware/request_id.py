import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from planhub.core.logging import latency_bucket_ms, log_event, request_id_ctx_var

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the lifetime of one call and echo it back.

    A caller-supplied x-request-id is reused as is; otherwise a uuid4 is minted.
    Error handlers read it from request.state to fill the error envelope.
    """

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
        request.state.request_id = rid
        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)

        response.headers[REQUEST_ID_HEADER] = rid
        log_event(
            "info",
            "request.complete",
            request_id=rid,
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            latency_bucket=latency_bucket_ms((time.perf_counter() - started) * 1000),
        )
        return response
