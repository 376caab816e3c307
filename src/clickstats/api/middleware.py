"""Request correlation middleware.

Every request gets a request id and a correlation id, taken from the
incoming headers when present. Both are bound to the logging context
variables for the duration of the request and echoed in the response.
"""

from __future__ import annotations

import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from clickstats.observability.logging import LogContext

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"
CORRELATION_ID_HEADER = "x-correlation-id"


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind request/correlation ids to logs and response headers.

    Headers:
    - x-request-id: generated when the client does not send one
    - x-correlation-id: passed through, defaults to the request id
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or request_id
        request.state.request_id = request_id
        request.state.correlation_id = correlation_id

        with LogContext(request_id=request_id, correlation_id=correlation_id):
            start = time.perf_counter()
            response = await call_next(request)
            logger.debug(
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({(time.perf_counter() - start) * 1000:.1f} ms)"
            )

        response.headers[REQUEST_ID_HEADER] = request_id
        response.headers[CORRELATION_ID_HEADER] = correlation_id
        return response
