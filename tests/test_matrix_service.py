import pytest

from tenant_rbac.api.v1.services import get_permission_matrix_service, get_role_service
from tenant_rbac.core.models import SystemRoleImmutable, UnknownPermission, WildcardRoleImmutable
from tests.utils import TENANT


matrix = get_permission_matrix_service()


async def test_matrix_covers_every_role_and_catalog_permission(provisioned_db):
    result = await matrix.build(provisioned_db, TENANT)

    names = [permission.name for permission in result.permissions]
    assert len(names) == 19
    assert [row.name for row in result.roles] == ["admin", "guest", "user", "manager"]
    assert all(set(row.cells) == set(names) for row in result.roles)
    assert result.resources["profile"] == ["profile:read", "profile:write"]


async def test_wildcard_row_renders_fully_granted(provisioned_db):
    result = await matrix.build(provisioned_db, TENANT)
    admin = next(row for row in result.roles if row.name == "admin")

    assert admin.wildcard is True
    assert all(cell.granted and not cell.inherited for cell in admin.cells.values())


async def test_cells_distinguish_direct_and_inherited_grants(provisioned_db):
    result = await matrix.build(provisioned_db, TENANT)
    manager = next(row for row in result.roles if row.name == "manager")

    assert manager.cells["users:read"].granted is True
    assert manager.cells["profile:read"].granted is False
    assert manager.cells["profile:read"].inherited is True
    assert manager.cells["audit:read"].granted is False
    assert manager.cells["audit:read"].inherited is False


async def test_toggle_flips_a_cell(provisioned_db):
    added = await matrix.toggle(provisioned_db, TENANT, "manager", "reports:export")
    assert added.granted is True
    assert added.version == 2

    removed = await matrix.toggle(provisioned_db, TENANT, "manager", "reports:export")
    assert removed.granted is False
    assert removed.version == 3

    role = await get_role_service().get(provisioned_db, TENANT, "manager")
    assert role.permission_names == {"users:read", "users:write", "reports:read"}


async def test_toggle_on_wildcard_role_is_rejected(provisioned_db):
    with pytest.raises(WildcardRoleImmutable):
        await matrix.toggle(provisioned_db, TENANT, "admin", "users:read")


async def test_toggle_on_system_role_is_rejected(provisioned_db):
    with pytest.raises(SystemRoleImmutable):
        await matrix.toggle(provisioned_db, TENANT, "guest", "users:read")


async def test_toggle_unknown_permission(provisioned_db):
    with pytest.raises(UnknownPermission):
        await matrix.toggle(provisioned_db, TENANT, "manager", "billing:read")


async def test_concurrent_toggles_on_different_cells_keep_both(file_db_manager):
    async with file_db_manager.async_session_factory() as first, file_db_manager.async_session_factory() as second:
        await get_role_service().create(first, TENANT, "editor")
        await matrix.build(second, TENANT)

        await matrix.toggle(first, TENANT, "editor", "users:read")
        result = await matrix.toggle(second, TENANT, "editor", "reports:read")

        assert result.granted is True

    async with file_db_manager.async_session_factory() as fresh:
        role = await get_role_service().get(fresh, TENANT, "editor")
        assert role.permission_names == {"users:read", "reports:read"}
