from tenant_rbac.api.v1.services import (
    get_authorization_service,
    get_inheritance_resolver,
    get_permission_catalog,
    get_role_service,
    get_user_roles_service,
)
from tests.utils import OTHER_TENANT, TENANT


authorization = get_authorization_service()
user_roles = get_user_roles_service()
roles = get_role_service()


async def test_user_without_roles_has_no_permissions(provisioned_db):
    assert await authorization.effective_permissions(provisioned_db, TENANT, "nobody") == set()
    assert await authorization.has_permission(provisioned_db, TENANT, "nobody", "public:read") is False


async def test_effective_permissions_is_union_of_resolved_roles(provisioned_db):
    await roles.create(provisioned_db, TENANT, "auditor", permissions=["audit:read"])
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["manager", "auditor"])
    resolver = get_inheritance_resolver()

    effective = await authorization.effective_permissions(provisioned_db, TENANT, "u1")

    expected = (
        await resolver.resolve(provisioned_db, TENANT, "manager")
        | await resolver.resolve(provisioned_db, TENANT, "auditor")
    )
    assert effective == expected
    assert "profile:read" in effective  # inherited from `user`


async def test_has_permission(provisioned_db):
    await roles.create(provisioned_db, TENANT, "editor", permissions=["users:read"])
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["editor"])

    assert await authorization.has_permission(provisioned_db, TENANT, "u1", "users:read") is True
    assert await authorization.has_permission(provisioned_db, TENANT, "u1", "users:write") is False


async def test_wildcard_role_gets_permissions_added_later(provisioned_db):
    await user_roles.apply_delta(provisioned_db, TENANT, "root", add=["admin"])
    admin_version = (await roles.get(provisioned_db, TENANT, "admin")).version

    await get_permission_catalog().add(provisioned_db, TENANT, "audit:export")

    assert await authorization.has_permission(provisioned_db, TENANT, "root", "audit:export") is True
    assert (await roles.get(provisioned_db, TENANT, "admin")).version == admin_version


async def test_wildcard_does_not_grant_names_outside_the_catalog(provisioned_db):
    await user_roles.apply_delta(provisioned_db, TENANT, "root", add=["admin"])

    assert await authorization.has_permission(provisioned_db, TENANT, "root", "billing:read") is False


async def test_permissions_do_not_leak_across_tenants(provisioned_db):
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["admin"])

    assert await authorization.effective_permissions(provisioned_db, OTHER_TENANT, "u1") == set()
