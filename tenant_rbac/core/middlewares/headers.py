from typing import Callable

from fastapi import Request

from tenant_rbac.core.config import settings


async def security_headers_middleware(request: Request, call_next: Callable):
    """Hardening headers for a JSON API whose every answer depends on the tenant scope."""
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
    response.headers["Referrer-Policy"] = "no-referrer"
    if settings.is_production:
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    # Authorization data must never be served from a shared cache across tenants
    response.headers["Cache-Control"] = "no-store"
    response.headers["Vary"] = settings.TENANT_HEADER

    return response
