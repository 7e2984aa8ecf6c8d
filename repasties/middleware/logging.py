"""
Repasties — Request Logging Middleware
=======================================

What:  One access-log line per HTTP request, on the `repasties.access` logger.
How:   Times the downstream handler and logs method, path, status, duration
       and client address. Redirects also log their target, so a failed save
       or an unknown snippet id shows up as "303 → /".
When:  Runs inside RequestIDMiddleware; the log filter adds the request ID.

Snippet bodies and form contents are never logged.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("repasties.access")

# Load balancer probes
UNLOGGED_PATHS = frozenset({"/health"})


def level_for_status(status: int) -> int:
    """5xx ERROR, 4xx WARNING, everything else INFO."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        target = response.headers.get("location")
        logger.log(
            level_for_status(response.status_code),
            "%s %s %d%s %.1fms from %s",
            request.method,
            request.url.path,
            response.status_code,
            f" → {target}" if target else "",
            duration_ms,
            request.client.host if request.client else "unknown",
        )
        return response
