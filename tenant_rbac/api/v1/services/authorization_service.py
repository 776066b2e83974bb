import logging
from functools import lru_cache
from typing import Set

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.repositories import UserRolesRepository, get_user_roles_repository
from tenant_rbac.api.v1.services.common import ensure_tenant
from tenant_rbac.api.v1.services.inheritance import InheritanceResolver, get_inheritance_resolver
from tenant_rbac.api.v1.services.user_roles_service import ensure_user

logger = logging.getLogger(__name__)


class AuthorizationService:
    """
    Read path: what a user may do inside a tenant. Pure reads, no side effects.
    """

    def __init__(self, resolver: InheritanceResolver, user_roles_repository: UserRolesRepository):
        self.resolver = resolver
        self.user_roles_repository = user_roles_repository

    async def effective_permissions(self, db: AsyncSession, tenant_id: str, user_id: str) -> Set[str]:
        """Union of the resolved permission sets of every role the user holds."""
        tenant_id = ensure_tenant(tenant_id)
        user_id = ensure_user(user_id)

        role_names = await self.user_roles_repository.get_role_names(db, tenant_id, user_id)
        if not role_names:
            return set()

        graph = await self.resolver.snapshot(db, tenant_id)
        return set(graph.resolve_many(role_names))

    async def has_permission(self, db: AsyncSession, tenant_id: str, user_id: str, permission: str) -> bool:
        granted = permission in await self.effective_permissions(db, tenant_id, user_id)
        logger.debug("Permission check %s for user %s in tenant %s: %s", permission, user_id, tenant_id, granted)
        return granted


@lru_cache()
def get_authorization_service() -> AuthorizationService:
    return AuthorizationService(
        resolver=get_inheritance_resolver(),
        user_roles_repository=get_user_roles_repository(),
    )
