import logging
from functools import lru_cache
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role
from tenant_rbac.api.v1.services.catalog_service import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.common import apply_delta, check_version, normalize_names
from tenant_rbac.api.v1.services.role_service import RoleService, get_role_service, replace_grants
from tenant_rbac.core.models import Conflict, SystemRoleImmutable
from tenant_rbac.db import atomic

logger = logging.getLogger(__name__)

MAX_DELTA_ATTEMPTS = 3


class RolePermissionsService:
    """Atomic add/remove mutations on a role's directly granted permissions."""

    def __init__(self, role_service: RoleService, catalog: PermissionCatalog):
        self.role_service = role_service
        self.catalog = catalog

    async def get_permissions(self, db: AsyncSession, tenant_id: str, role_name: str) -> List[str]:
        role = await self.role_service.get(db, tenant_id, role_name)
        return sorted(role.permission_names)

    async def apply_delta(
        self,
        db: AsyncSession,
        tenant_id: str,
        role_name: str,
        add: Optional[Iterable[str]] = None,
        remove: Optional[Iterable[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Role:
        """
        new = (current | add) - remove, applied in one transaction.

        Remove wins when a name is in both sets. Unknown names in `add` are
        rejected; unknown names in `remove` are ignored. Re-applying the
        same delta is a no-op and does not move the role version.

        Without `expected_version` a delta that loses a race against another
        writer is recomputed on the fresh grant set, so concurrent deltas on
        different permissions all land. With it, the race surfaces as Conflict.
        """
        add = normalize_names(add)
        remove = normalize_names(remove)

        attempt = 1
        while True:
            try:
                return await self._apply(db, tenant_id, role_name, add, remove, expected_version, refresh=attempt > 1)
            except Conflict:
                if expected_version is not None or attempt >= MAX_DELTA_ATTEMPTS:
                    raise
                logger.info("Role %s changed concurrently, recomputing delta (attempt %d)", role_name, attempt + 1)
                attempt += 1

    async def _apply(
        self,
        db: AsyncSession,
        tenant_id: str,
        role_name: str,
        add: List[str],
        remove: List[str],
        expected_version: Optional[int],
        refresh: bool,
    ) -> Role:
        role = await self.role_service.get(db, tenant_id, role_name, refresh=refresh)
        if role.system:
            logger.warning("Rejected permission delta on system role %s in tenant %s", role.name, role.tenant_id)
            raise SystemRoleImmutable(
                f"Role '{role.name}' is a system role and cannot be modified.",
                data={"role": role.name},
            )
        check_version(role.name, role.version, expected_version)
        versions = await self.catalog.ensure_known(db, role.tenant_id, add)

        current = role.permission_names
        updated = apply_delta(current, add, remove)
        if updated == current:
            return role

        granted = updated - current
        async with atomic(db):
            await self.catalog.hold(
                db, role.tenant_id, {name: version for name, version in versions.items() if name in granted}
            )
            replace_grants(role, updated)

        logger.info(
            "Role %s permissions updated in tenant %s (+%d -%d, version %d)",
            role.name, role.tenant_id, len(granted), len(current - updated), role.version,
        )
        return role


@lru_cache()
def get_role_permissions_service() -> RolePermissionsService:
    return RolePermissionsService(role_service=get_role_service(), catalog=get_permission_catalog())
