from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.db import get_db
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import limiter
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.core.security import get_tenant_id, verify_api_key

from tenant_rbac.api.v1.schemas import Role
from tenant_rbac.api.v1.services import ProvisioningService, get_provisioning_service

prefix = "/tenant"
router = APIRouter(prefix=prefix)


@router.post("/provision", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def provision_tenant(
        request: Request,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        provisioning_service: Annotated[ProvisioningService, Depends(get_provisioning_service)]
):
    """Apply the default role set to the tenant. Roles that already exist are kept as they are."""
    roles = await provisioning_service.provision_tenant(db, tenant_id)
    counts = await provisioning_service.role_service.users_count(db, tenant_id, roles)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        data=[Role.from_model(role, users_count=counts.get(role.id, 0)) for role in roles],
    )
