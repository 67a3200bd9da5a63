"""
Logging middleware for request correlation and structured logging.
"""
import re
import time
import uuid
from typing import Callable, Optional
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
import structlog


logger = structlog.get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
_REQUEST_ID_FORMAT = re.compile(r"[A-Za-z0-9._:-]{1,64}")


def accepted_request_id(value: Optional[str]) -> Optional[str]:
    """An incoming request id, if it is short and made of safe characters"""
    if value and _REQUEST_ID_FORMAT.fullmatch(value):
        return value
    return None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Binds a request id to every log line of a request and logs its outcome.
    A well-formed incoming X-Request-ID is reused so ids line up with
    upstream proxies; anything else is replaced with a fresh UUID.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = accepted_request_id(request.headers.get(REQUEST_ID_HEADER)) or str(uuid.uuid4())

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None
        )

        start_time = time.time()

        try:
            response = await call_next(request)
            duration_ms = (time.time() - start_time) * 1000

            log = logger.warning if response.status_code >= 500 else logger.info
            log(
                "http_request_completed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2)
            )

            response.headers[REQUEST_ID_HEADER] = request_id
            return response

        except Exception as exc:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "http_request_failed",
                duration_ms=round(duration_ms, 2),
                error=str(exc),
                error_type=type(exc).__name__
            )
            raise
