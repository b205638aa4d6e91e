"""Per-request access log with timing."""

import logging
import time
from typing import Callable

from fastapi import Request, Response

from src.core.config import get_settings

logger = logging.getLogger(__name__)

HEALTH_PATHS = ("/health", "/health/ready")
RESPONSE_TIME_HEADER = "X-Response-Time"


def _log_level(path: str, status_code: int, latency_ms: float, slow_threshold_ms: int) -> int:
    if path in HEALTH_PATHS:
        return logging.DEBUG
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400 or latency_ms > slow_threshold_ms:
        return logging.WARNING
    return logging.INFO


async def latency_logging_middleware(request: Request, call_next: Callable) -> Response:
    """Log each request and stamp the response with its duration.

    Health check traffic stays at debug level. Client errors and requests slower
    than ``slow_request_threshold_ms`` log as warnings, server errors as errors.
    """
    start_time = time.perf_counter()
    status_code = 500

    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers[RESPONSE_TIME_HEADER] = f"{(time.perf_counter() - start_time) * 1000:.2f}ms"
        return response
    finally:
        latency_ms = (time.perf_counter() - start_time) * 1000
        slow_threshold_ms = get_settings().slow_request_threshold_ms
        path = request.url.path
        logger.log(
            _log_level(path, status_code, latency_ms, slow_threshold_ms),
            "%s %s - %s - %.2fms%s",
            request.method,
            path,
            status_code,
            latency_ms,
            " (slow)" if latency_ms > slow_threshold_ms else "",
            extra={
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "latency_ms": round(latency_ms, 2),
            },
        )
