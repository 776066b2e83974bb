import logging
import re
from collections import OrderedDict
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Permission, WILDCARD
from tenant_rbac.api.v1.repositories import PermissionRepository, get_permission_repository
from tenant_rbac.api.v1.services.common import ensure_tenant
from tenant_rbac.core.models import Conflict, UnknownPermission, ValidationError
from tenant_rbac.db import atomic

logger = logging.getLogger(__name__)

PERMISSION_NAME_PATTERN = re.compile(r"^([a-z0-9_-]+):([a-z0-9_-]+)$")


def parse_permission_name(name: str) -> Tuple[str, str]:
    """Split `resource:action`, rejecting anything else."""
    match = PERMISSION_NAME_PATTERN.match(name or "")
    if not match:
        raise ValidationError(
            f"Invalid permission name {name!r}: expected 'resource:action' in lowercase.",
            data={"name": name},
        )
    return match.group(1), match.group(2)


class PermissionCatalog:
    """
    The universe of permission identifiers a tenant can grant.

    Deployment-wide permissions are seeded once; tenants may append their own.
    The catalog is append-only while a permission is referenced by any role.
    """

    def __init__(self, permission_repository: PermissionRepository):
        self.permission_repository = permission_repository

    async def list(self, db: AsyncSession, tenant_id: str) -> List[Permission]:
        tenant_id = ensure_tenant(tenant_id)
        return await self.permission_repository.get_all(db, tenant_id)

    async def list_grouped(self, db: AsyncSession, tenant_id: str) -> Dict[str, List[Permission]]:
        groups: Dict[str, List[Permission]] = OrderedDict()
        for permission in await self.list(db, tenant_id):
            groups.setdefault(permission.resource, []).append(permission)
        return groups

    async def all_names(self, db: AsyncSession, tenant_id: str) -> Set[str]:
        tenant_id = ensure_tenant(tenant_id)
        return await self.permission_repository.get_names(db, tenant_id)

    async def exists(self, db: AsyncSession, tenant_id: str, name: str) -> bool:
        return name in await self.all_names(db, tenant_id)

    async def validate(self, db: AsyncSession, tenant_id: str, names: Iterable[str]) -> Set[str]:
        """Return the names that are neither in the catalog nor the wildcard."""
        requested = {name for name in names if name != WILDCARD}
        if not requested:
            return set()
        return requested - await self.all_names(db, tenant_id)

    async def ensure_known(self, db: AsyncSession, tenant_id: str, names: Iterable[str]) -> Dict[str, int]:
        """
        Raise UnknownPermission unless every name is in the catalog.

        Returns the version of each tenant-owned permission among `names`,
        read before the check. The transaction that grants them passes it to
        `hold`.
        """
        names = set(names)
        versions = await self.permission_repository.get_owned_versions(db, tenant_id, names - {WILDCARD})
        unknown = await self.validate(db, tenant_id, names)
        if unknown:
            raise UnknownPermission(
                f"Unknown permission(s): {', '.join(sorted(unknown))}",
                data={"unknown": sorted(unknown)},
            )
        return versions

    async def hold(self, db: AsyncSession, tenant_id: str, versions: Dict[str, int]) -> None:
        """
        Move the version of each tenant permission about to be granted.

        Runs inside the granting transaction: a concurrent `remove` then fails
        its version check, and a `remove` that got there first makes this
        raise Conflict.
        """
        for name, version in sorted(versions.items()):
            if not await self.permission_repository.bump_version(db, tenant_id, name, version):
                logger.warning("Permission %s changed while being granted in tenant %s", name, tenant_id)
                raise Conflict(
                    f"Permission '{name}' was removed or changed concurrently. Re-read and retry.",
                    data={"name": name},
                )

    async def add(self, db: AsyncSession, tenant_id: str, name: str, description: Optional[str] = None) -> Permission:
        """Append a tenant-specific permission to the catalog."""
        tenant_id = ensure_tenant(tenant_id)
        name = (name or "").strip()
        resource, action = parse_permission_name(name)

        if name in await self.permission_repository.get_names(db, tenant_id):
            raise Conflict(f"Permission '{name}' already exists in the catalog.", data={"name": name})

        async with atomic(db):
            permission = await self.permission_repository.add(
                db,
                Permission(
                    tenant_id=tenant_id,
                    name=name,
                    resource=resource,
                    action=action,
                    description=description,
                ),
            )
        logger.info("Permission %s added to catalog of tenant %s", name, tenant_id)
        return permission

    async def remove(self, db: AsyncSession, tenant_id: str, name: str) -> None:
        tenant_id = ensure_tenant(tenant_id)
        permission = await self.permission_repository.get_owned(db, tenant_id, name)
        if permission is None:
            if await self.exists(db, tenant_id, name):
                raise ValidationError(
                    f"Permission '{name}' is deployment-wide and cannot be removed by a tenant.",
                    data={"name": name},
                )
            raise UnknownPermission(f"Unknown permission: {name}", data={"unknown": [name]})

        references = await self.permission_repository.count_role_references(db, tenant_id, name)
        if references:
            logger.warning("Refusing to remove permission %s: referenced by %d role(s)", name, references)
            raise Conflict(
                f"Permission '{name}' is still granted to {references} role(s).",
                data={"name": name, "roles": references},
            )

        async with atomic(db):
            await self.permission_repository.delete(db, permission)
        logger.info("Permission %s removed from catalog of tenant %s", name, tenant_id)

    async def seed_deployment(self, db: AsyncSession, entries: Iterable[dict]) -> int:
        """Insert the deployment-wide permissions that are missing. Returns how many were added."""
        existing = {permission.name for permission in await self.permission_repository.get_global(db)}
        added = 0
        async with atomic(db):
            for entry in entries:
                name = entry["name"]
                if name in existing:
                    continue
                resource, action = parse_permission_name(name)
                db.add(Permission(
                    tenant_id=None,
                    name=name,
                    resource=resource,
                    action=action,
                    description=entry.get("description"),
                ))
                existing.add(name)
                added += 1
        if added:
            logger.info("Seeded %d deployment-wide permission(s)", added)
        return added


@lru_cache()
def get_permission_catalog() -> PermissionCatalog:
    return PermissionCatalog(permission_repository=get_permission_repository())
