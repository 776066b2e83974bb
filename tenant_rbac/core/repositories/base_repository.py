from typing import Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.core.models import Base


T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Data access for a tenant-scoped table.

    Every query filters on `tenant_id`; nothing here commits, so the calling
    service decides the transaction boundary.
    """

    def __init__(self, model: Type[T]):
        self.model = model

    def tenant_query(self, tenant_id: str):
        return select(self.model).where(self.model.tenant_id == tenant_id)

    async def get_all(self, db: AsyncSession, tenant_id: str) -> List[T]:
        result = await db.execute(self.tenant_query(tenant_id))
        return list(result.scalars().all())

    async def get_by_name(self, db: AsyncSession, tenant_id: str, name: str, refresh: bool = False) -> Optional[T]:
        query = self.tenant_query(tenant_id).where(self.model.name == name)
        if refresh:
            # Overwrite whatever the identity map holds with the committed row
            query = query.execution_options(populate_existing=True)
        result = await db.execute(query)
        return result.scalars().first()

    async def add(self, db: AsyncSession, item: T) -> T:
        db.add(item)
        await db.flush()
        return item

    async def delete(self, db: AsyncSession, item: T) -> None:
        await db.delete(item)
        await db.flush()
