"""Request context middleware: request ids, timing, and one log line per request.

The log line carries the text language and id when the request targets a
text route, so a text's traffic can be followed without parsing paths.
"""

import logging
import re
import time
import uuid
from typing import Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..core.logging_config import request_id_var

logger = logging.getLogger(__name__)

_TEXT_ROUTE = re.compile(
    r"^/api/(?P<lang>[^/]+)/texts(?:/(?P<text_id>[0-9a-fA-F-]{36}))?(?:/|$)"
)


def text_route_context(path: str) -> Dict[str, str]:
    """``lang`` and ``text_id`` named by a text route path, when present."""
    match = _TEXT_ROUTE.match(path)
    if match is None:
        return {}
    return {key: value for key, value in match.groupdict().items() if value}


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        rid = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        token = request_id_var.set(rid)
        start = time.monotonic()

        try:
            response = await call_next(request)
            elapsed_ms = round((time.monotonic() - start) * 1000, 1)

            response.headers["X-Request-ID"] = rid
            response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

            path = request.url.path
            logger.info(
                "%s %s %s",
                request.method,
                path,
                response.status_code,
                extra={
                    "method": request.method,
                    "path": path,
                    "status_code": response.status_code,
                    "duration_ms": elapsed_ms,
                    **text_route_context(path),
                },
            )
            return response
        finally:
            request_id_var.reset(token)
