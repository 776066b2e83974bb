from fastapi import Request, status
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from tenant_rbac.core.config import settings
from tenant_rbac.core.schemas import ApiResponse


# Rate limiter instance, applied to mutating admin endpoints
limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Custom handler for rate limit exceeded"""
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=ApiResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error="RateLimitExceeded",
            detail=f"Rate limit exceeded: {exc.detail}. Please try again later.",
        ).model_dump(),
    )
