from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Set

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Permission, Role, RolePermission
from tenant_rbac.core.repositories import BaseRepository


class PermissionRepository(BaseRepository[Permission]):
    """
    The catalog visible to a tenant is the deployment-wide permissions
    (tenant_id IS NULL) plus the tenant's own extensions.
    """

    def __init__(self):
        super().__init__(Permission)

    def tenant_query(self, tenant_id: str):
        return select(self.model).where(
            or_(self.model.tenant_id == tenant_id, self.model.tenant_id.is_(None))
        )

    async def get_all(self, db: AsyncSession, tenant_id: str) -> List[Permission]:
        query = self.tenant_query(tenant_id).order_by(self.model.resource, self.model.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_names(self, db: AsyncSession, tenant_id: str) -> Set[str]:
        query = select(self.model.name).where(
            or_(self.model.tenant_id == tenant_id, self.model.tenant_id.is_(None))
        )
        result = await db.execute(query)
        return set(result.scalars().all())

    async def get_global(self, db: AsyncSession) -> List[Permission]:
        result = await db.execute(select(self.model).where(self.model.tenant_id.is_(None)))
        return list(result.scalars().all())

    async def get_owned(self, db: AsyncSession, tenant_id: str, name: str) -> Optional[Permission]:
        """Tenant-specific permission only; deployment-wide entries are not returned."""
        result = await db.execute(
            select(self.model).where(self.model.tenant_id == tenant_id, self.model.name == name)
            # The version is read for the delete guard, so never trust the identity map
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_owned_versions(self, db: AsyncSession, tenant_id: str, names: Iterable[str]) -> Dict[str, int]:
        """name -> version for the tenant's own permissions among `names`."""
        names = list(names)
        if not names:
            return {}
        result = await db.execute(
            select(self.model.name, self.model.version)
            .where(self.model.tenant_id == tenant_id, self.model.name.in_(names))
        )
        return {name: version for name, version in result.all()}

    async def bump_version(self, db: AsyncSession, tenant_id: str, name: str, version: int) -> bool:
        """Compare-and-set the version. Returns False when the row moved or is gone."""
        result = await db.execute(
            update(self.model)
            .where(
                self.model.tenant_id == tenant_id,
                self.model.name == name,
                self.model.version == version,
            )
            .values(version=version + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def count_role_references(self, db: AsyncSession, tenant_id: str, name: str) -> int:
        query = (
            select(func.count())
            .select_from(RolePermission)
            .join(Role, Role.id == RolePermission.role_id)
            .where(Role.tenant_id == tenant_id, RolePermission.permission == name)
        )
        result = await db.execute(query)
        return result.scalar_one()


@lru_cache()
def get_permission_repository() -> PermissionRepository:
    return PermissionRepository()
