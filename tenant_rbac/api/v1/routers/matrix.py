from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.db import get_db
from tenant_rbac.core.config import settings
from tenant_rbac.core.middlewares import limiter
from tenant_rbac.core.schemas import ApiResponse
from tenant_rbac.core.security import get_expected_version, get_tenant_id, verify_api_key

from tenant_rbac.api.v1.schemas import ToggleRequest
from tenant_rbac.api.v1.services import PermissionMatrixService, get_permission_matrix_service

prefix = "/matrix"
router = APIRouter(prefix=prefix)


@router.post("/{role_name}/toggle", response_model=ApiResponse)
@limiter.limit(settings.MUTATION_RATE_LIMIT)
async def toggle_cell(
        request: Request,
        role_name: str,
        toggle: ToggleRequest,
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        expected_version: Annotated[Optional[int], Depends(get_expected_version)],
        db: Annotated[AsyncSession, Depends(get_db)],
        matrix_service: Annotated[PermissionMatrixService, Depends(get_permission_matrix_service)]
):
    """Flip one (role, permission) cell. Wildcard rows cannot be toggled."""
    result = await matrix_service.toggle(
        db, tenant_id, role_name, toggle.permission.strip(), expected_version=expected_version
    )
    return ApiResponse(status_code=status.HTTP_200_OK, data=result)


@router.get("", response_model=ApiResponse)
async def read_matrix(
        api_key: Annotated[None, Depends(verify_api_key)],
        tenant_id: Annotated[str, Depends(get_tenant_id)],
        db: Annotated[AsyncSession, Depends(get_db)],
        matrix_service: Annotated[PermissionMatrixService, Depends(get_permission_matrix_service)]
):
    """Roles x permissions grid built from the same data authorization decisions use."""
    matrix = await matrix_service.build(db, tenant_id)
    return ApiResponse(status_code=status.HTTP_200_OK, data=matrix)
