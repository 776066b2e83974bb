import logging
from functools import lru_cache
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.repositories import (
    RoleRepository,
    UserRolesRepository,
    get_role_repository,
    get_user_roles_repository,
)
from tenant_rbac.api.v1.services.common import apply_delta, ensure_tenant, normalize_names
from tenant_rbac.core.models import UnknownRole, ValidationError
from tenant_rbac.db import atomic

logger = logging.getLogger(__name__)


def ensure_user(user_id: Optional[str]) -> str:
    user_id = (user_id or "").strip()
    if not user_id or len(user_id) > 128:
        raise ValidationError("A user id of 1 to 128 characters is required.", data={"user_id": user_id})
    return user_id


class UserRolesService:
    """Many-to-many mapping between users and role names, per tenant."""

    def __init__(self, role_repository: RoleRepository, user_roles_repository: UserRolesRepository):
        self.role_repository = role_repository
        self.user_roles_repository = user_roles_repository

    async def get_roles(self, db: AsyncSession, tenant_id: str, user_id: str) -> List[str]:
        tenant_id = ensure_tenant(tenant_id)
        user_id = ensure_user(user_id)
        return await self.user_roles_repository.get_role_names(db, tenant_id, user_id)

    async def apply_delta(
        self,
        db: AsyncSession,
        tenant_id: str,
        user_id: str,
        add: Optional[Iterable[str]] = None,
        remove: Optional[Iterable[str]] = None,
    ) -> List[str]:
        """
        roles = (current | add) - remove in one transaction, remove winning
        on overlap. Returns the user's full, sorted role set.
        """
        tenant_id = ensure_tenant(tenant_id)
        user_id = ensure_user(user_id)
        add = normalize_names(add)
        remove = normalize_names(remove)

        known = {role.name: role for role in await self.role_repository.get_by_names(db, tenant_id, add + remove)}
        unknown = [name for name in add if name not in known]
        if unknown:
            raise UnknownRole(f"Unknown role(s): {', '.join(sorted(unknown))}", data={"unknown": sorted(unknown)})

        current = set(await self.user_roles_repository.get_role_names(db, tenant_id, user_id))
        updated = apply_delta(current, add, remove)
        granted = sorted(updated - current)
        revoked = sorted(current - updated)

        if granted or revoked:
            async with atomic(db):
                await self.user_roles_repository.assign(db, tenant_id, user_id, [known[name].id for name in granted])
                await self.user_roles_repository.revoke(db, tenant_id, user_id, [known[name].id for name in revoked])
            logger.info(
                "User %s roles updated in tenant %s (granted=%s, revoked=%s)", user_id, tenant_id, granted, revoked
            )

        return sorted(updated)


@lru_cache()
def get_user_roles_service() -> UserRolesService:
    return UserRolesService(
        role_repository=get_role_repository(),
        user_roles_repository=get_user_roles_repository(),
    )
