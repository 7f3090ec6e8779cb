"""Request correlation for merge and delete tracing.

A merge touches people, connections and rosters in one batch; the
correlation ID ties its log lines (service, repository, suggester) to the
HTTP request that caused it. Clients may send ``X-Correlation-ID`` to join
their own traces; otherwise one is minted per request. The ID is echoed on
the response and added to error bodies by the exception handlers in
``faceroster.main``.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

CORRELATION_HEADER = "X-Correlation-ID"
_CONTEXT_KEY = "correlation_id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind a per-request correlation ID to structlog and ``request.state``."""

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or uuid.uuid4().hex
        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(**{_CONTEXT_KEY: correlation_id})

        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars(_CONTEXT_KEY)

        response.headers[CORRELATION_HEADER] = correlation_id
        return response


def get_correlation_id() -> str | None:
    """Correlation ID of the request being handled, or None outside one."""
    return structlog.contextvars.get_contextvars().get(_CONTEXT_KEY)
