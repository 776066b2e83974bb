from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.db import get_db
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import limiter
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.core.security import get_tenant_id, verify_api_key

from tenant_rbac.api.v1.schemas import Delta, PermissionCheck, UserPermissions, UserRoles
from tenant_rbac.api.v1.services import (
    AuthorizationService,
    UserRolesService,
    get_authorization_service,
    get_user_roles_service,
)

prefix = "/users"
router = APIRouter(prefix=prefix)


@router.post("/{user_id}/roles", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def apply_roles_delta(
        request: Request,
        user_id: str,
        delta: Delta,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        user_roles_service: Annotated[UserRolesService, Depends(get_user_roles_service)]
):
    """Grant and revoke roles of a user in one step. Remove wins on overlap."""
    roles = await user_roles_service.apply_delta(db, tenant_id, user_id, add=delta.add, remove=delta.remove)
    return ApiResponse(status_code=status.HTTP_200_OK, data=UserRoles(user_id=user_id, roles=roles))


@router.get("/{user_id}/roles", response_model=ApiResponse)
async def read_user_roles(
        user_id: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        user_roles_service: Annotated[UserRolesService, Depends(get_user_roles_service)]
):
    roles = await user_roles_service.get_roles(db, tenant_id, user_id)
    return ApiResponse(status_code=status.HTTP_200_OK, data=UserRoles(user_id=user_id, roles=roles))


@router.get("/{user_id}/permissions/{permission}", response_model=ApiResponse)
async def check_user_permission(
        user_id: str,
        permission: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        authorization_service: Annotated[AuthorizationService, Depends(get_authorization_service)]
):
    granted = await authorization_service.has_permission(db, tenant_id, user_id, permission)
    data = PermissionCheck(user_id=user_id, permission=permission, granted=granted)
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)


@router.get("/{user_id}/permissions", response_model=ApiResponse)
async def read_user_permissions(
        user_id: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        authorization_service: Annotated[AuthorizationService, Depends(get_authorization_service)]
):
    """Effective permissions: the union over every role the user holds, inheritance included."""
    permissions = await authorization_service.effective_permissions(db, tenant_id, user_id)
    data = UserPermissions(user_id=user_id, permissions=sorted(permissions))
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)
