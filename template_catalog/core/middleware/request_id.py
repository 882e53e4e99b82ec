"""Request correlation for the catalog API."""

import logging
import time
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware

from template_catalog.core.logging import LOGGER_NAME, latency_bucket_ms, request_id_ctx_var

logger = logging.getLogger(LOGGER_NAME)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id for the duration of a request.

    An incoming X-Request-Id is reused; otherwise a UUID4 is generated. The id
    is exposed as request.state.request_id, returned in the response header
    and attached to the completion log line.
    """

    def __init__(self, app, header_name: str = "x-request-id"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request, call_next):
        rid = request.headers.get(self.header_name) or str(uuid4())
        request.state.request_id = rid

        token = request_id_ctx_var.set(rid)
        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            request_id_ctx_var.reset(token)
        elapsed_ms = (time.perf_counter() - started) * 1000

        response.headers[self.header_name] = rid
        logger.info(
            "request.complete",
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": response.status_code,
                "latency_bucket": latency_bucket_ms(elapsed_ms),
            },
        )
        return response
