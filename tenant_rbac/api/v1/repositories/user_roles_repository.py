from functools import lru_cache
from typing import Iterable, List
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role, UserRole


class UserRolesRepository:
    """Persistence of (tenant_id, user_id, role) assignments."""

    async def get_role_names(self, db: AsyncSession, tenant_id: str, user_id: str) -> List[str]:
        query = (
            select(Role.name)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(UserRole.tenant_id == tenant_id, UserRole.user_id == user_id, Role.tenant_id == tenant_id)
            .order_by(Role.name)
        )
        result = await db.execute(query)
        return list(result.scalars().all())

    async def assign(self, db: AsyncSession, tenant_id: str, user_id: str, role_ids: Iterable[UUID]) -> None:
        for role_id in role_ids:
            db.add(UserRole(tenant_id=tenant_id, user_id=user_id, role_id=role_id))
        await db.flush()

    async def revoke(self, db: AsyncSession, tenant_id: str, user_id: str, role_ids: Iterable[UUID]) -> None:
        role_ids = list(role_ids)
        if not role_ids:
            return
        await db.execute(
            delete(UserRole).where(
                UserRole.tenant_id == tenant_id,
                UserRole.user_id == user_id,
                UserRole.role_id.in_(role_ids),
            )
        )

    async def count_for_role(self, db: AsyncSession, tenant_id: str, role_id: UUID) -> int:
        result = await db.execute(
            select(func.count()).select_from(UserRole).where(UserRole.tenant_id == tenant_id, UserRole.role_id == role_id)
        )
        return result.scalar_one()

    async def delete_for_role(self, db: AsyncSession, tenant_id: str, role_id: UUID) -> int:
        result = await db.execute(
            delete(UserRole).where(UserRole.tenant_id == tenant_id, UserRole.role_id == role_id)
        )
        return result.rowcount or 0


@lru_cache()
def get_user_roles_repository() -> UserRolesRepository:
    return UserRolesRepository()
