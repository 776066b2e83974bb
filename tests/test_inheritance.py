import pytest

from tenant_rbac.api.v1.services import RoleGraph, get_inheritance_resolver, get_permission_catalog, get_role_service
from tenant_rbac.api.v1.services.inheritance import RoleNode
from tenant_rbac.core.models import CyclicInheritance, UnknownRole
from tests.utils import TENANT

CATALOG = {"users:read", "users:write", "users:delete", "reports:read", "public:read"}


def graph(*nodes: RoleNode, catalog=CATALOG) -> RoleGraph:
    return RoleGraph(TENANT, nodes, catalog)


def node(name, permissions=(), inherits_from=None) -> RoleNode:
    return RoleNode(name=name, inherits_from=inherits_from, permissions=frozenset(permissions))


def test_resolve_walks_the_parent_chain():
    roles = graph(
        node("a", ["public:read"]),
        node("b", ["users:read"], inherits_from="a"),
        node("c", ["users:write"], inherits_from="b"),
    )

    assert roles.resolve("c") == {"public:read", "users:read", "users:write"}
    # Transitivity: a descendant's set contains every ancestor's set
    assert roles.resolve("c") >= roles.resolve("b") >= roles.resolve("a")


def test_wildcard_absorbs_other_entries():
    roles = graph(node("admin", ["*", "users:read"]))

    assert roles.resolve("admin") == CATALOG


def test_wildcard_on_ancestor_grants_full_catalog():
    roles = graph(node("root", ["*"]), node("child", ["users:read"], inherits_from="root"))

    assert roles.resolve("child") == CATALOG


def test_resolve_many_is_the_union_of_resolved_sets():
    roles = graph(
        node("a", ["public:read"]),
        node("b", ["users:read"], inherits_from="a"),
        node("c", ["reports:read"]),
    )

    assert roles.resolve_many(["b", "c"]) == roles.resolve("b") | roles.resolve("c")
    assert roles.resolve_many(["c", "b"]) == roles.resolve_many(["b", "c"])
    assert roles.resolve_many([]) == frozenset()


def test_unknown_role():
    with pytest.raises(UnknownRole):
        graph(node("a")).resolve("ghost")


def test_cycle_in_stored_data_is_reported():
    roles = graph(node("a", inherits_from="b"), node("b", inherits_from="a"))

    with pytest.raises(CyclicInheritance):
        roles.resolve("a")


def test_missing_parent_ends_the_walk():
    roles = graph(node("orphan", ["users:read"], inherits_from="deleted"))

    assert roles.resolve("orphan") == {"users:read"}


def test_results_are_memoized_per_snapshot():
    roles = graph(node("a", ["users:read"]))

    assert roles.resolve("a") is roles.resolve("a")


async def test_resolver_uses_current_catalog_for_wildcard(provisioned_db):
    resolver = get_inheritance_resolver()
    before = await resolver.resolve(provisioned_db, TENANT, "admin")

    await get_permission_catalog().add(provisioned_db, TENANT, "audit:export")

    after = await resolver.resolve(provisioned_db, TENANT, "admin")
    assert after == before | {"audit:export"}


async def test_resolver_includes_inherited_grants(provisioned_db):
    await get_role_service().create(provisioned_db, TENANT, "regional_manager", inherits_from="manager")

    resolved = await get_inheritance_resolver().resolve(provisioned_db, TENANT, "regional_manager")

    assert resolved == {"users:read", "users:write", "reports:read", "profile:read", "profile:write"}
