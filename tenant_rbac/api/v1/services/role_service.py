import logging
import re
from functools import lru_cache
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role, RolePermission
from tenant_rbac.api.v1.repositories import (
    RoleRepository,
    UserRolesRepository,
    get_role_repository,
    get_user_roles_repository,
)
from tenant_rbac.api.v1.services.catalog_service import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.common import check_version, ensure_tenant, normalize_names
from tenant_rbac.core.config import settings
from tenant_rbac.core.models import (
    Conflict,
    CyclicInheritance,
    DuplicateRole,
    SystemRoleImmutable,
    UnknownParentRole,
    UnknownRole,
    ValidationError,
    utcnow,
)
from tenant_rbac.db import atomic

logger = logging.getLogger(__name__)

ROLE_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
ROLE_NAME_MAX_LENGTH = 100


class _Unset:
    def __repr__(self):
        return "UNSET"


# Distinguishes "field not sent" from an explicit None
UNSET = _Unset()


def validate_role_name(name: str) -> str:
    if not name or not ROLE_NAME_PATTERN.match(name):
        raise ValidationError(
            f"Invalid role name {name!r}: use lowercase letters, digits, '_' or '-'.",
            data={"name": name},
        )
    if len(name) > ROLE_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Role name too long: max {ROLE_NAME_MAX_LENGTH} characters.",
            data={"name": name},
        )
    return name


def find_cycle(links: Dict[str, Optional[str]], start: str) -> Optional[List[str]]:
    """
    Walk the parent chain from `start`. Returns the chain up to the repeated
    role if it loops, None otherwise.
    """
    path: List[str] = []
    visited = set()
    current: Optional[str] = start
    while current is not None:
        if current in visited:
            return path + [current]
        visited.add(current)
        path.append(current)
        current = links.get(current)
    return None


def parent_chain(links: Dict[str, Optional[str]], start: str) -> List[str]:
    """`start` followed by its ancestors. The links must be acyclic."""
    chain = []
    current: Optional[str] = start
    while current is not None:
        chain.append(current)
        current = links.get(current)
    return chain


def replace_grants(role: Role, permissions: Iterable[str]) -> bool:
    """Make the role's direct grants exactly `permissions`. Returns True if anything changed."""
    wanted = set(permissions)
    current = role.permission_names
    if wanted == current:
        return False
    for grant in list(role.grants):
        if grant.permission not in wanted:
            role.grants.remove(grant)
    for name in sorted(wanted - current):
        role.grants.append(RolePermission(permission=name))
    # Touch the row so the version counter moves with the grant set
    role.updated_at = utcnow()
    return True


class RoleService:
    """
    Tenant-scoped role store: CRUD with name, parent and permission
    validation done before anything is written.
    """

    def __init__(
        self,
        role_repository: RoleRepository,
        user_roles_repository: UserRolesRepository,
        catalog: PermissionCatalog,
    ):
        self.role_repository = role_repository
        self.user_roles_repository = user_roles_repository
        self.catalog = catalog

    async def list(self, db: AsyncSession, tenant_id: str) -> List[Role]:
        tenant_id = ensure_tenant(tenant_id)
        return await self.role_repository.get_all(db, tenant_id)

    async def get(self, db: AsyncSession, tenant_id: str, name: str, refresh: bool = False) -> Role:
        tenant_id = ensure_tenant(tenant_id)
        role = await self.role_repository.get_by_name(db, tenant_id, name, refresh=refresh)
        if role is None:
            raise UnknownRole(f"Role '{name}' not found.", data={"role": name})
        return role

    async def users_count(self, db: AsyncSession, tenant_id: str, roles: Iterable[Role]) -> Dict[UUID, int]:
        return await self.role_repository.get_users_count(db, tenant_id, [role.id for role in roles])

    async def create(
        self,
        db: AsyncSession,
        tenant_id: str,
        name: str,
        description: Optional[str] = None,
        inherits_from: Optional[str] = None,
        permissions: Optional[Iterable[str]] = None,
        system: bool = False,
    ) -> Role:
        tenant_id = ensure_tenant(tenant_id)
        name = validate_role_name((name or "").strip())
        permissions = normalize_names(permissions)
        inherits_from = (inherits_from or "").strip() or None

        if await self.role_repository.get_by_name(db, tenant_id, name) is not None:
            raise DuplicateRole(f"Role '{name}' already exists.", data={"role": name})
        permission_versions = await self.catalog.ensure_known(db, tenant_id, permissions)
        lineage = {}
        if inherits_from is not None:
            lineage = await self._check_inheritance(db, tenant_id, name, inherits_from)

        role = Role(
            tenant_id=tenant_id,
            name=name,
            description=description,
            system=system,
            inherits_from=inherits_from,
            grants=[RolePermission(permission=permission) for permission in permissions],
        )
        try:
            async with atomic(db):
                await self._hold_lineage(db, tenant_id, lineage)
                await self.catalog.hold(db, tenant_id, permission_versions)
                await self.role_repository.add(db, role)
        except Conflict as exc:
            if not isinstance(exc.__cause__, IntegrityError):
                raise
            # Lost a race against a concurrent create of the same name
            raise DuplicateRole(f"Role '{name}' already exists.", data={"role": name}) from exc

        logger.info("Role %s created in tenant %s (system=%s, parent=%s)", name, tenant_id, system, inherits_from)
        return role

    async def update(
        self,
        db: AsyncSession,
        tenant_id: str,
        name: str,
        description=UNSET,
        inherits_from=UNSET,
        permissions: Optional[Iterable[str]] = None,
        expected_version: Optional[int] = None,
    ) -> Role:
        role = await self.get(db, tenant_id, name)
        tenant_id = role.tenant_id
        self._ensure_mutable(role)
        check_version(role.name, role.version, expected_version)

        permission_versions = {}
        if permissions is not None:
            permissions = normalize_names(permissions)
            versions = await self.catalog.ensure_known(db, tenant_id, permissions)
            granted = role.permission_names
            permission_versions = {
                permission: version for permission, version in versions.items() if permission not in granted
            }

        lineage = {}
        if inherits_from is not UNSET:
            inherits_from = (inherits_from or "").strip() or None
            if inherits_from is not None:
                lineage = await self._check_inheritance(db, tenant_id, role.name, inherits_from)

        async with atomic(db):
            await self._hold_lineage(db, tenant_id, lineage)
            await self.catalog.hold(db, tenant_id, permission_versions)
            if description is not UNSET:
                role.description = description
            if inherits_from is not UNSET:
                role.inherits_from = inherits_from
            if permissions is not None:
                replace_grants(role, permissions)
            role.updated_at = utcnow()

        logger.info("Role %s updated in tenant %s (version %d)", role.name, tenant_id, role.version)
        return role

    async def delete(
        self,
        db: AsyncSession,
        tenant_id: str,
        name: str,
        expected_version: Optional[int] = None,
    ) -> int:
        """
        Delete a role. Returns the number of user assignments removed with it.

        Child roles are detached from the deleted parent; a system child
        blocks the deletion since its inheritance cannot change.
        """
        role = await self.get(db, tenant_id, name)
        tenant_id = role.tenant_id
        self._ensure_mutable(role)
        check_version(role.name, role.version, expected_version)

        # Read before the children: a child linked after this point conflicts
        lineage = await self.role_repository.get_lineage(db, tenant_id)
        if role.name not in lineage:
            raise UnknownRole(f"Role '{name}' not found.", data={"role": name})
        _, token = lineage[role.name]
        children = await self.role_repository.get_children(db, tenant_id, role.name)
        system_children = sorted(child.name for child in children if child.system)
        if system_children:
            raise SystemRoleImmutable(
                f"Role '{name}' is the parent of system role(s): {', '.join(system_children)}.",
                data={"role": name, "children": system_children},
            )

        assigned = await self.user_roles_repository.count_for_role(db, tenant_id, role.id)
        if assigned and settings.ROLE_DELETE_POLICY == "reject":
            raise Conflict(
                f"Role '{name}' is still assigned to {assigned} user(s).",
                data={"role": name, "users_count": assigned},
            )

        async with atomic(db):
            await self._hold_lineage(db, tenant_id, {role.name: token})
            removed = await self.user_roles_repository.delete_for_role(db, tenant_id, role.id)
            for child in children:
                child.inherits_from = None
                child.updated_at = utcnow()
            await self.role_repository.delete(db, role)

        if removed:
            logger.info("Role %s deletion removed %d user assignment(s)", name, removed)
        logger.info("Role %s deleted from tenant %s", name, tenant_id)
        return removed

    def _ensure_mutable(self, role: Role) -> None:
        if role.system:
            logger.warning("Rejected mutation of system role %s in tenant %s", role.name, role.tenant_id)
            raise SystemRoleImmutable(f"Role '{role.name}' is a system role and cannot be modified.", data={"role": role.name})

    async def _check_inheritance(self, db: AsyncSession, tenant_id: str, name: str, parent: str) -> Dict[str, int]:
        """
        Validate the link `name -> parent` against the tenant's current graph.

        Returns the lineage tokens the check relied on: the role itself and
        every role up the parent's chain. Holding them in the writing
        transaction makes a concurrent edit of that chain, or a delete of
        the parent, fail with Conflict instead of committing a broken graph.
        """
        lineage = await self.role_repository.get_lineage(db, tenant_id)
        if parent not in lineage:
            raise UnknownParentRole(f"Parent role '{parent}' not found.", data={"inherits_from": parent})

        links = {role: link for role, (link, _) in lineage.items()}
        links[name] = parent
        cycle = find_cycle(links, name)
        if cycle is not None:
            logger.warning("Rejected inheritance %s -> %s: cycle %s", name, parent, " -> ".join(cycle))
            raise CyclicInheritance(
                f"Role '{name}' cannot inherit from '{parent}': {' -> '.join(cycle)}",
                data={"cycle": cycle},
            )
        return {role: lineage[role][1] for role in parent_chain(links, name) if role in lineage}

    async def _hold_lineage(self, db: AsyncSession, tenant_id: str, tokens: Dict[str, int]) -> None:
        for role_name, token in sorted(tokens.items()):
            if not await self.role_repository.bump_lineage(db, tenant_id, role_name, token):
                logger.warning("Inheritance of role %s changed concurrently in tenant %s", role_name, tenant_id)
                raise Conflict(
                    f"Role '{role_name}' was changed or deleted concurrently. Re-read and retry.",
                    data={"role": role_name},
                )


@lru_cache()
def get_role_service() -> RoleService:
    return RoleService(
        role_repository=get_role_repository(),
        user_roles_repository=get_user_roles_repository(),
        catalog=get_permission_catalog(),
    )
