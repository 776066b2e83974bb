from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role, UserRole
from tenant_rbac.core.repositories import BaseRepository


class RoleRepository(BaseRepository[Role]):
    """
    Repository for Role entity. Grants are eagerly loaded with the role.
    """
    def __init__(self):
        super().__init__(Role)

    async def get_all(self, db: AsyncSession, tenant_id: str) -> List[Role]:
        """Roles of a tenant: system roles first, then alphabetical."""
        query = self.tenant_query(tenant_id).order_by(self.model.system.desc(), self.model.name)
        result = await db.execute(query)
        return list(result.scalars().all())

    async def get_by_names(self, db: AsyncSession, tenant_id: str, names: Iterable[str]) -> List[Role]:
        names = list(names)
        if not names:
            return []
        result = await db.execute(self.tenant_query(tenant_id).where(self.model.name.in_(names)))
        return list(result.scalars().all())

    async def get_children(self, db: AsyncSession, tenant_id: str, name: str) -> List[Role]:
        result = await db.execute(self.tenant_query(tenant_id).where(self.model.inherits_from == name))
        return list(result.scalars().all())

    async def get_lineage(self, db: AsyncSession, tenant_id: str) -> Dict[str, Tuple[Optional[str], int]]:
        """name -> (inherits_from, lineage token) for every role of the tenant."""
        result = await db.execute(
            select(self.model.name, self.model.inherits_from, self.model.lineage)
            .where(self.model.tenant_id == tenant_id)
        )
        return {name: (parent, lineage) for name, parent, lineage in result.all()}

    async def bump_lineage(self, db: AsyncSession, tenant_id: str, name: str, lineage: int) -> bool:
        """
        Compare-and-set the lineage token. Returns False when another
        transaction moved it, or deleted the role, since it was read.
        """
        result = await db.execute(
            update(self.model)
            .where(
                self.model.tenant_id == tenant_id,
                self.model.name == name,
                self.model.lineage == lineage,
            )
            .values(lineage=lineage + 1, updated_at=self.model.updated_at)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def get_users_count(self, db: AsyncSession, tenant_id: str, role_ids: Iterable[UUID]) -> Dict[UUID, int]:
        role_ids = list(role_ids)
        if not role_ids:
            return {}
        query = (
            select(UserRole.role_id, func.count())
            .where(UserRole.tenant_id == tenant_id, UserRole.role_id.in_(role_ids))
            .group_by(UserRole.role_id)
        )
        result = await db.execute(query)
        counts = {role_id: count for role_id, count in result.all()}
        return {role_id: counts.get(role_id, 0) for role_id in role_ids}


@lru_cache()
def get_role_repository() -> RoleRepository:
    """Dependency injector for RoleRepository."""
    return RoleRepository()
