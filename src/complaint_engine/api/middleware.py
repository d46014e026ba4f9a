"""Request authentication, correlation and response headers."""

import hmac
import logging
import time
import uuid
from collections.abc import Awaitable, Callable

from fastapi import HTTPException, Request, Response, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.middleware.base import BaseHTTPMiddleware

from complaint_engine.config import get_settings
from complaint_engine.observability.context import (
    reset_current_request_id,
    set_current_request_id,
)
from complaint_engine.observability.tracing import add_span_attribute, get_current_trace_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

bearer_scheme = HTTPBearer(auto_error=False)

CallNext = Callable[[Request], Awaitable[Response]]


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials | None = Security(bearer_scheme),
) -> str:
    """
    Require "Authorization: Bearer <api_key>" matching the configured key.

    Raises:
        HTTPException: 401 when the header is absent, not Bearer, or the key differs.
    """
    if credentials is None:
        raise HTTPException(
            status_code=401,
            detail="Missing or malformed Authorization header. Expected: Bearer <api_key>",
            headers={"WWW-Authenticate": "Bearer"},
        )

    expected = get_settings().api_key
    if not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(
            status_code=401,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Bind a request id for the duration of each request.

    The id comes from the X-Request-ID header when the caller sends one and
    is echoed back, along with the processing time and the trace id, so
    upstream form integrations can quote it when reporting a failed
    submission.
    """

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.request_id = request_id
        token = set_current_request_id(request_id)
        add_span_attribute("http.request_id", request_id)

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "%s %s raised after %.1fms",
                request.method,
                request.url.path,
                (time.perf_counter() - started) * 1000,
            )
            raise
        finally:
            reset_current_request_id(token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers["X-Processing-Time-Ms"] = f"{elapsed_ms:.0f}"
        trace_id = get_current_trace_id()
        if trace_id:
            response.headers["X-Trace-ID"] = trace_id

        log = logger.warning if response.status_code >= 500 else logger.info
        log(
            "%s %s -> %d (%.1fms, request_id=%s)",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            request_id,
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Set headers that stop browsers sniffing or framing API responses."""

    HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
    }

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        response.headers.update(self.HEADERS)
        return response
