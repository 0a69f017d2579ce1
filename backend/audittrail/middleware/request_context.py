"""Request context middleware — request id, client address and access log.

Binds ``request_id_var`` and ``client_ip_var`` for the lifetime of the
request so every log line emitted while serving it can be correlated, echoes
the id back in ``X-Request-ID`` and writes one access line per request.
"""

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from ..core.auth import client_ip
from ..core.logging_config import client_ip_var, request_id_var

logger = logging.getLogger(__name__)

_UNLOGGED_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or uuid.uuid4().hex[:16]
        rid_token = request_id_var.set(request_id)
        ip_token = client_ip_var.set(client_ip(request))
        started = time.monotonic()
        try:
            response = await call_next(request)
            elapsed_ms = round((time.monotonic() - started) * 1000, 1)
            response.headers["X-Request-ID"] = request_id
            response.headers["X-Response-Time"] = f"{elapsed_ms}ms"

            path = request.url.path
            if path not in _UNLOGGED_PATHS:
                log = logger.warning if response.status_code >= 500 else logger.info
                log(
                    "%s %s -> %d", request.method, path, response.status_code,
                    extra={"method": request.method, "path": path,
                           "status_code": response.status_code, "duration_ms": elapsed_ms},
                )
            return response
        finally:
            client_ip_var.reset(ip_token)
            request_id_var.reset(rid_token)
