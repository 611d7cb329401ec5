"""
Request context middleware

Assigns every request an id (reusing an incoming x-request-id), measures its
duration and logs one line per request.
"""
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("secondhand.access")

REQUEST_ID_HEADER = "x-request-id"
DURATION_HEADER = "x-request-duration"


class RequestContextMiddleware(BaseHTTPMiddleware):

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        request.state.started_at = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - request.state.started_at) * 1000
        response.headers[REQUEST_ID_HEADER] = request.state.request_id
        response.headers[DURATION_HEADER] = f"{duration_ms:.1f}ms"

        logger.info(
            "%s %s %s %.1fms [%s]",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request.state.request_id,
        )
        return response
