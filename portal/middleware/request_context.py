"""Request context middleware: request ids and the per-request access line.

The id is taken from X-Request-ID or generated, held in ``request_id_var``
while the request runs (RequestContextFilter copies it onto service log
lines), and echoed on the response.

The caller's identity is only known once ``require_user`` has validated the
bearer token, which happens downstream of this middleware. It leaves the
user id on ``request.state`` so the completion line can report who made
the request; anonymous and rejected requests log ``user=-``.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from portal.core.logging import request_id_var

logger = logging.getLogger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        token = request_id_var.set(req_id)

        start = time.monotonic()
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        user_id = getattr(request.state, "user_id", None)
        logger.info(
            "%s %s %d %.1fms user=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            user_id or "-",
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "user_id": user_id,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
