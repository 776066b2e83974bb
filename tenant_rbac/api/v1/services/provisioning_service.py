import logging
from functools import lru_cache
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role
from tenant_rbac.api.v1.repositories import RoleRepository, get_role_repository
from tenant_rbac.api.v1.services.catalog_service import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.common import ensure_tenant
from tenant_rbac.api.v1.services.role_service import RoleService, get_role_service
from tenant_rbac.utils.data_from_json import get_data_from_json

logger = logging.getLogger(__name__)

PERMISSIONS_FILE = "permissions.json"
DEFAULT_ROLES_FILE = "default_roles.json"


class ProvisioningService:
    """
    Applies seed data: the deployment-wide permission catalog at startup and
    the default role set when a tenant is provisioned. Both are idempotent.
    """

    def __init__(self, catalog: PermissionCatalog, role_service: RoleService, role_repository: RoleRepository):
        self.catalog = catalog
        self.role_service = role_service
        self.role_repository = role_repository

    async def seed_catalog(self, db: AsyncSession) -> int:
        return await self.catalog.seed_deployment(db, get_data_from_json(PERMISSIONS_FILE))

    async def provision_tenant(self, db: AsyncSession, tenant_id: str) -> List[Role]:
        """Create the default roles the tenant does not have yet. Existing roles are left untouched."""
        tenant_id = ensure_tenant(tenant_id)
        created = []
        # Parents are listed before their children in the seed file
        for entry in get_data_from_json(DEFAULT_ROLES_FILE):
            if await self.role_repository.get_by_name(db, tenant_id, entry["name"]) is not None:
                continue
            role = await self.role_service.create(
                db,
                tenant_id,
                name=entry["name"],
                description=entry.get("description"),
                inherits_from=entry.get("inherits_from"),
                permissions=entry.get("permissions", []),
                system=entry.get("system", False),
            )
            created.append(role.name)

        if created:
            logger.info("Provisioned tenant %s with default roles: %s", tenant_id, ", ".join(created))
        return await self.role_service.list(db, tenant_id)


@lru_cache()
def get_provisioning_service() -> ProvisioningService:
    return ProvisioningService(
        catalog=get_permission_catalog(),
        role_service=get_role_service(),
        role_repository=get_role_repository(),
    )
