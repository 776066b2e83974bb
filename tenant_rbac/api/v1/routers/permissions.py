from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.db import get_db
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import limiter
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.core.security import get_tenant_id, verify_api_key

from tenant_rbac.api.v1.schemas import PermissionCreate, PermissionGroups
from tenant_rbac.api.v1.services import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.matrix_service import to_permission_schema


prefix = "/permissions"
router = APIRouter(prefix=prefix)


@router.get("/grouped", response_model=ApiResponse)
async def read_grouped_permissions(
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)]
):
    groups = await catalog.list_grouped(db, tenant_id)
    data = PermissionGroups(
        resources={
            resource: [to_permission_schema(permission) for permission in permissions]
            for resource, permissions in groups.items()
        }
    )
    return ApiResponse(status_code=status.HTTP_200_OK, data=data)


@router.delete("/{name}", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def delete_permission(
        request: Request,
        name: str,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)]
):
    """Remove a tenant-specific permission that no role grants anymore."""
    await catalog.remove(db, tenant_id, name)
    return ApiResponse(status_code=status.HTTP_200_OK, detail="Permission deleted successfully.", data={"name": name})


@router.post("", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def create_permission(
        request: Request,
        permission: PermissionCreate,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)]
):
    """Append a tenant-specific `resource:action` permission to the catalog."""
    created = await catalog.add(db, tenant_id, permission.name, permission.description)
    return ApiResponse(status_code=status.HTTP_201_CREATED, data=to_permission_schema(created))


@router.get("", response_model=ApiResponse)
async def list_permissions(
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        catalog: Annotated[PermissionCatalog, Depends(get_permission_catalog)]
):
    """Every permission the tenant can grant: deployment-wide ones plus its own."""
    permissions = await catalog.list(db, tenant_id)
    return ApiResponse(status_code=status.HTTP_200_OK, data=[to_permission_schema(p) for p in permissions])
