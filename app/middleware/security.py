import time
import uuid
import logging
from typing import Callable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)


class SecurityLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request logging middleware.

    - Adds request_id (echoed as X-Request-ID)
    - Logs method, path, status, latency and owner
    - Never logs query strings (they can carry email addresses)
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = str(uuid.uuid4())
        start_time = time.time()

        request.state.request_id = request_id

        try:
            response = await call_next(request)
            status_code = response.status_code
        except Exception:
            logger.exception(
                "request_failed request_id=%s method=%s path=%s",
                request_id,
                request.method,
                request.url.path,
            )
            raise

        duration_ms = int((time.time() - start_time) * 1000)
        owner_id = getattr(request.state, "owner_id", None)
        client_ip = request.client.host if request.client else None

        logger.info(
            "request_completed request_id=%s method=%s path=%s status=%s duration_ms=%s owner=%s ip=%s",
            request_id,
            request.method,
            request.url.path,
            status_code,
            duration_ms,
            owner_id,
            client_ip,
        )

        response.headers["X-Request-ID"] = request_id
        return response
