import logging
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.services import AuthorizationService, get_authorization_service
from tenant_rbac.core.config import settings
from tenant_rbac.core.models import PermissionDenied, TenantScopeMissing, ValidationError
from tenant_rbac.db import get_db

logger = logging.getLogger(__name__)


def verify_api_key(x_api_key: Annotated[Optional[str], Header(alias="X-API-Key")] = None):
    if settings.API_KEY and x_api_key != settings.API_KEY:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")


def get_tenant_id(
    tenant_id: Annotated[Optional[str], Header(alias=settings.TENANT_HEADER)] = None,
) -> str:
    """Tenant scope of the request. Requests without it never reach the core."""
    if tenant_id is None or not tenant_id.strip():
        raise TenantScopeMissing(f"Missing tenant scope: send the {settings.TENANT_HEADER} header.")
    return tenant_id.strip()


def parse_version(raw: Optional[str]) -> Optional[int]:
    """Accepts `3`, `"3"` and `W/"3"` as sent in If-Match."""
    if raw is None or not raw.strip():
        return None
    value = raw.strip()
    if value.startswith("W/"):
        value = value[2:]
    value = value.strip('"')
    try:
        version = int(value)
    except ValueError:
        raise ValidationError(f"Invalid If-Match version: {raw!r}", data={"if_match": raw})
    if version < 1:
        raise ValidationError(f"Invalid If-Match version: {raw!r}", data={"if_match": raw})
    return version


def get_expected_version(
    if_match: Annotated[Optional[str], Header(alias="If-Match")] = None,
) -> Optional[int]:
    return parse_version(if_match)


def require_expected_version(
    if_match: Annotated[Optional[str], Header(alias="If-Match")] = None,
) -> Optional[int]:
    """Whole-record mutations must state which version they were computed from."""
    version = parse_version(if_match)
    if version is None and settings.REQUIRE_ROLE_VERSION:
        raise ValidationError(
            "This operation requires an If-Match header with the current role version.",
            status_code=status.HTTP_428_PRECONDITION_REQUIRED,
        )
    return version


def get_current_user_id(
    user_id: Annotated[Optional[str], Header(alias=settings.USER_HEADER)] = None,
) -> str:
    """Caller identity as asserted by the upstream gateway."""
    if user_id is None or not user_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing user identity")
    return user_id.strip()


def require_permissions(*required_permissions: str):
    """
    FastAPI dependency factory guarding a route with permissions of this core.

    Usage:
        @router.get("/reports", dependencies=[Depends(require_permissions("reports:read"))])
    """
    async def permission_dependency(
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        user_id: Annotated[str, Depends(get_current_user_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        authorization: Annotated[AuthorizationService, Depends(get_authorization_service)],
    ) -> str:
        effective = await authorization.effective_permissions(db, tenant_id, user_id)
        missing = sorted(set(required_permissions) - effective)
        if missing:
            logger.warning("User %s in tenant %s lacks %s", user_id, tenant_id, missing)
            raise PermissionDenied("Not enough permissions", data={"missing": missing})
        return user_id

    return permission_dependency
