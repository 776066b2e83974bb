import logging
import time
from typing import Callable

from fastapi import Request

from tenant_rbac.core.config import settings

logger = logging.getLogger("tenant_rbac.requests")


async def request_logging_middleware(request: Request, call_next: Callable):
    """Log every request with its tenant scope, status and duration."""
    start_time = time.perf_counter()

    response = await call_next(request)

    duration = time.perf_counter() - start_time
    logger.info(
        "[%s] %s tenant=%s - %s - %.3fs",
        request.method,
        request.url.path,
        request.headers.get(settings.TENANT_HEADER, "-"),
        response.status_code,
        duration,
    )

    return response
