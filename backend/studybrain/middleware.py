import time
import logging
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# request lines for these are logged at debug
QUIET_PATHS = {"/health"}


def level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """Logs each AI/YouTube request with its status and timing.

    Chat responses are event streams; for those the logged time is the
    time until the stream opened, not until it finished.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        started = time.perf_counter()
        method = request.method
        path = request.url.path
        quiet = path in QUIET_PATHS
        client_host = request.client.host if request.client else "unknown"

        if request.query_params:
            logger.log(
                logging.DEBUG if quiet else logging.INFO,
                "→ %s %s | Query: %s | Client: %s", method, path, dict(request.query_params), client_host,
            )
        else:
            logger.log(logging.DEBUG if quiet else logging.INFO, "→ %s %s | Client: %s", method, path, client_host)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "✗ %s %s | Error: %s | Time: %.3fs", method, path, e, time.perf_counter() - started, exc_info=True
            )
            raise

        elapsed = time.perf_counter() - started
        level = level_for_status(response.status_code)
        if quiet and level == logging.INFO:
            level = logging.DEBUG
        streaming = response.headers.get("content-type", "").startswith("text/event-stream")
        logger.log(
            level,
            "← %s %s | Status: %s | %s: %.3fs",
            method, path, response.status_code, "Stream opened" if streaming else "Time", elapsed,
        )

        response.headers["X-Process-Time"] = f"{elapsed:.4f}"
        return response
