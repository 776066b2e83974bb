from tenant_rbac.api.v1.services import get_provisioning_service, get_role_permissions_service
from tests.utils import OTHER_TENANT, TENANT


provisioning = get_provisioning_service()


async def test_provision_creates_default_roles(db):
    roles = {role.name: role for role in await provisioning.provision_tenant(db, TENANT)}

    assert set(roles) == {"admin", "user", "guest", "manager"}
    assert roles["admin"].system and roles["admin"].is_wildcard
    assert roles["user"].permission_names == {"profile:read", "profile:write"}
    assert roles["guest"].permission_names == {"public:read"}
    assert roles["manager"].system is False
    assert roles["manager"].inherits_from == "user"


async def test_provision_is_idempotent_and_keeps_existing_roles(db):
    await provisioning.provision_tenant(db, TENANT)
    await get_role_permissions_service().apply_delta(db, TENANT, "manager", add=["audit:read"])

    roles = {role.name: role for role in await provisioning.provision_tenant(db, TENANT)}

    assert len(roles) == 4
    assert "audit:read" in roles["manager"].permission_names


async def test_provision_is_per_tenant(db):
    await provisioning.provision_tenant(db, TENANT)

    other = await provisioning.provision_tenant(db, OTHER_TENANT)

    assert {role.tenant_id for role in other} == {OTHER_TENANT}
    assert len(other) == 4
