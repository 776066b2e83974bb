import logging
from functools import lru_cache
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.repositories import RoleRepository, get_role_repository
from tenant_rbac.api.v1.schemas import MatrixCell, MatrixRow, Permission, PermissionMatrix, ToggleResult
from tenant_rbac.api.v1.services.catalog_service import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.common import ensure_tenant
from tenant_rbac.api.v1.services.inheritance import RoleGraph
from tenant_rbac.api.v1.services.role_permissions_service import (
    RolePermissionsService,
    get_role_permissions_service,
)
from tenant_rbac.api.v1.services.role_service import RoleService, get_role_service
from tenant_rbac.core.models import UnknownPermission, WildcardRoleImmutable

logger = logging.getLogger(__name__)


def to_permission_schema(permission) -> Permission:
    return Permission(
        name=permission.name,
        description=permission.description,
        resource=permission.resource,
        action=permission.action,
        tenant_scoped=permission.tenant_id is not None,
    )


class PermissionMatrixService:
    """
    Roles x catalog grid, computed from the same data the authorization
    decisions use. Edits go through RolePermissionsService.
    """

    def __init__(
        self,
        catalog: PermissionCatalog,
        role_repository: RoleRepository,
        role_service: RoleService,
        role_permissions_service: RolePermissionsService,
    ):
        self.catalog = catalog
        self.role_repository = role_repository
        self.role_service = role_service
        self.role_permissions_service = role_permissions_service

    async def build(self, db: AsyncSession, tenant_id: str) -> PermissionMatrix:
        tenant_id = ensure_tenant(tenant_id)
        permissions = await self.catalog.list(db, tenant_id)
        roles = await self.role_repository.get_all(db, tenant_id)
        names = [permission.name for permission in permissions]
        graph = RoleGraph.from_roles(tenant_id, roles, names)

        resources: Dict[str, List[str]] = {}
        for permission in permissions:
            resources.setdefault(permission.resource, []).append(permission.name)

        rows = []
        for role in roles:
            direct = role.permission_names
            wildcard = role.is_wildcard
            resolved = graph.resolve(role.name)
            cells = {
                name: MatrixCell(
                    granted=wildcard or name in direct,
                    inherited=not wildcard and name not in direct and name in resolved,
                )
                for name in names
            }
            rows.append(MatrixRow(
                name=role.name,
                system=role.system,
                wildcard=wildcard,
                version=role.version,
                cells=cells,
            ))

        return PermissionMatrix(
            permissions=[to_permission_schema(permission) for permission in permissions],
            resources=resources,
            roles=rows,
        )

    async def toggle(
        self,
        db: AsyncSession,
        tenant_id: str,
        role_name: str,
        permission: str,
        expected_version: Optional[int] = None,
    ) -> ToggleResult:
        """Flip one cell: a single-element add or remove chosen from the cell's current state."""
        role = await self.role_service.get(db, tenant_id, role_name)
        if role.is_wildcard:
            raise WildcardRoleImmutable(
                f"Role '{role.name}' grants every permission; its cells cannot be toggled.",
                data={"role": role.name, "permission": permission},
            )
        if not await self.catalog.exists(db, role.tenant_id, permission):
            raise UnknownPermission(f"Unknown permission: {permission}", data={"unknown": [permission]})

        if permission in role.permission_names:
            role = await self.role_permissions_service.apply_delta(
                db, role.tenant_id, role.name, remove=[permission], expected_version=expected_version
            )
        else:
            role = await self.role_permissions_service.apply_delta(
                db, role.tenant_id, role.name, add=[permission], expected_version=expected_version
            )

        return ToggleResult(
            role=role.name,
            permission=permission,
            granted=permission in role.permission_names,
            version=role.version,
        )


@lru_cache()
def get_permission_matrix_service() -> PermissionMatrixService:
    return PermissionMatrixService(
        catalog=get_permission_catalog(),
        role_repository=get_role_repository(),
        role_service=get_role_service(),
        role_permissions_service=get_role_permissions_service(),
    )
