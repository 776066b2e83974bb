from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.db import get_db
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import limiter
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.core.security import (
    get_expected_version,
    get_tenant_id,
    require_expected_version,
    verify_api_key,
)
from tenant_rbac.api.v1.schemas import Delta, Role, RoleCreate, RolePermissions, RoleUpdate
from tenant_rbac.api.v1.services import (
    UNSET,
    InheritanceResolver,
    RolePermissionsService,
    RoleService,
    get_inheritance_resolver,
    get_role_permissions_service,
    get_role_service,
)

prefix = "/roles"
router = APIRouter(prefix=prefix)


@router.post("/{name}/permissions", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def apply_permissions_delta(
        request: Request,
        name: str,
        delta: Delta,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        expected_version: Annotated[Optional[int], Depends(get_expected_version)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_permissions_service: Annotated[RolePermissionsService, Depends(get_role_permissions_service)]
):
    """Add and remove direct grants of a role in one step. Remove wins on overlap."""
    role = await role_permissions_service.apply_delta(
        db, tenant_id, name, add=delta.add, remove=delta.remove, expected_version=expected_version
    )
    data = RolePermissions(role=role.name, permissions=sorted(role.permission_names), version=role.version)
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)


@router.get("/{name}/permissions", response_model=ApiResponse)
async def read_role_permissions(
        name: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Permissions granted directly to a role, without inheritance."""
    role = await role_service.get(db, tenant_id, name)
    data = RolePermissions(role=role.name, permissions=sorted(role.permission_names), version=role.version)
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)


@router.get("/{name}/effective-permissions", response_model=ApiResponse)
async def read_effective_permissions(
        name: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        resolver: Annotated[InheritanceResolver, Depends(get_inheritance_resolver)]
):
    """Permissions of a role after walking its parent chain and expanding the wildcard."""
    permissions = await resolver.resolve(db, tenant_id, name)
    return ApiResponse(status_code=status.HTTP_200_OK, data=RolePermissions(role=name, permissions=sorted(permissions)))


@router.get("/{name}", response_model=ApiResponse)
async def read_role(
        name: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    role = await role_service.get(db, tenant_id, name)
    counts = await role_service.users_count(db, tenant_id, [role])
    return ApiResponse(status_code=status.HTTP_200_OK, data=Role.from_model(role, counts.get(role.id, 0)))


@router.put("/{name}", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def update_role(
        request: Request,
        name: str,
        role: RoleUpdate,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        expected_version: Annotated[Optional[int], Depends(require_expected_version)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Update a role and return it. Fields absent from the body are left as they are."""
    sent = role.model_fields_set
    updated = await role_service.update(
        db,
        tenant_id,
        name,
        description=role.description if "description" in sent else UNSET,
        inherits_from=role.inherits_from if "inherits_from" in sent else UNSET,
        permissions=role.permissions,
        expected_version=expected_version,
    )
    counts = await role_service.users_count(db, tenant_id, [updated])
    return ApiResponse(status_code=status.HTTP_200_OK, data=Role.from_model(updated, counts.get(updated.id, 0)))


@router.delete("/{name}", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def delete_role(
        request: Request,
        name: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        expected_version: Annotated[Optional[int], Depends(require_expected_version)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Delete a role. User assignments of the role are removed with it."""
    removed = await role_service.delete(db, tenant_id, name, expected_version=expected_version)
    return ApiResponse(
        status_code=status.HTTP_200_OK,
        detail="Role deleted successfully.",
        data={"role": name, "assignments_removed": removed},
    )


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def create_role(
        request: Request,
        role: RoleCreate,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Create a new role and return it."""
    created = await role_service.create(
        db,
        tenant_id,
        name=role.name,
        description=role.description,
        inherits_from=role.inherits_from,
        permissions=role.permissions,
    )
    return ApiResponse(status_code=status.HTTP_201_CREATED, data=Role.from_model(created))


@router.get("", response_model=ApiResponse)
async def list_roles(
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        role_service: Annotated[RoleService, Depends(get_role_service)]
):
    """Roles of the tenant with their direct permissions and assigned user counts."""
    roles = await role_service.list(db, tenant_id)
    counts = await role_service.users_count(db, tenant_id, roles)
    data = [Role.from_model(role, counts.get(role.id, 0)) for role in roles]
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)
