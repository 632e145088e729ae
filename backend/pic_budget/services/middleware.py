"""Request tracing middleware."""
import time
import uuid
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("pic-budget.http")

SKIP_LOG_PATHS = {"/health", "/docs", "/openapi.json"}


class RequestTimingMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an X-Request-ID (reusing the caller's when sent),
    reports the handling time in X-Process-Time and logs one structured line
    per request. Server errors are logged at WARNING so a failed workbook
    export stands out from routine traffic.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start = time.perf_counter()

        response: Response = await call_next(request)

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(duration_ms)

        path = request.url.path
        if path in SKIP_LOG_PATHS:
            return response

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        logger.log(
            level,
            f"{request.method} {path} -> {response.status_code} ({duration_ms} ms)",
            extra={
                "request_id": request_id,
                "http_method": request.method,
                "http_path": path,
                "http_status": response.status_code,
                "duration_ms": duration_ms,
            },
        )
        return response
