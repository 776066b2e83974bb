import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, FrozenSet, Iterable, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_rbac.api.v1.models import Role, WILDCARD
from tenant_rbac.api.v1.repositories import RoleRepository, get_role_repository
from tenant_rbac.api.v1.services.catalog_service import PermissionCatalog, get_permission_catalog
from tenant_rbac.api.v1.services.common import ensure_tenant
from tenant_rbac.core.models import CyclicInheritance, UnknownRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleNode:
    name: str
    inherits_from: Optional[str]
    permissions: FrozenSet[str]

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.permissions


class RoleGraph:
    """
    Immutable snapshot of a tenant's roles and catalog, taken at call time.

    Resolution results are memoized for the lifetime of the snapshot, so
    resolving many roles against one snapshot walks each chain once.
    """

    def __init__(self, tenant_id: str, nodes: Iterable[RoleNode], catalog: Iterable[str]):
        self.tenant_id = tenant_id
        self.nodes: Dict[str, RoleNode] = {node.name: node for node in nodes}
        self.catalog: FrozenSet[str] = frozenset(catalog)
        self._resolved: Dict[str, FrozenSet[str]] = {}

    @classmethod
    def from_roles(cls, tenant_id: str, roles: Iterable[Role], catalog: Iterable[str]) -> "RoleGraph":
        nodes = [
            RoleNode(
                name=role.name,
                inherits_from=role.inherits_from,
                permissions=frozenset(role.permission_names),
            )
            for role in roles
        ]
        return cls(tenant_id, nodes, catalog)

    def resolve(self, role_name: str) -> FrozenSet[str]:
        """
        Effective permissions of a role: the union of direct grants along
        the parent chain. A wildcard anywhere on the chain grants the whole
        catalog and ends the walk.
        """
        if role_name in self._resolved:
            return self._resolved[role_name]
        if role_name not in self.nodes:
            raise UnknownRole(f"Role '{role_name}' not found.", data={"role": role_name})

        visited: Set[str] = set()
        result: Set[str] = set()
        current: Optional[str] = role_name
        while current is not None:
            if current in visited:
                raise CyclicInheritance(
                    f"Inheritance cycle detected at role '{current}'.",
                    data={"role": role_name, "at": current},
                )
            visited.add(current)

            node = self.nodes.get(current)
            if node is None:
                logger.warning("Role %s references missing parent %s in tenant %s", role_name, current, self.tenant_id)
                break
            if node.is_wildcard:
                result = set(self.catalog)
                break
            result |= node.permissions
            current = node.inherits_from

        resolved = frozenset(result)
        self._resolved[role_name] = resolved
        return resolved

    def resolve_many(self, role_names: Iterable[str]) -> FrozenSet[str]:
        """Union of the resolved sets of every role; order does not matter."""
        result: Set[str] = set()
        for name in role_names:
            result |= self.resolve(name)
        return frozenset(result)


class InheritanceResolver:

    def __init__(self, role_repository: RoleRepository, catalog: PermissionCatalog):
        self.role_repository = role_repository
        self.catalog = catalog

    async def snapshot(self, db: AsyncSession, tenant_id: str) -> RoleGraph:
        tenant_id = ensure_tenant(tenant_id)
        roles = await self.role_repository.get_all(db, tenant_id)
        catalog = await self.catalog.all_names(db, tenant_id)
        return RoleGraph.from_roles(tenant_id, roles, catalog)

    async def resolve(self, db: AsyncSession, tenant_id: str, role_name: str) -> Set[str]:
        graph = await self.snapshot(db, tenant_id)
        return set(graph.resolve(role_name))


@lru_cache()
def get_inheritance_resolver() -> InheritanceResolver:
    return InheritanceResolver(role_repository=get_role_repository(), catalog=get_permission_catalog())
