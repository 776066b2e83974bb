import pytest

from tenant_rbac.api.v1.services import get_role_service, get_user_roles_service
from tenant_rbac.core.models import UnknownRole, ValidationError
from tests.utils import OTHER_TENANT, TENANT


user_roles = get_user_roles_service()


async def test_apply_delta_returns_full_sorted_role_set(provisioned_db):
    roles = await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["manager", "guest"])

    assert roles == ["guest", "manager"]
    assert await user_roles.get_roles(provisioned_db, TENANT, "u1") == ["guest", "manager"]


async def test_apply_delta_remove_wins_and_is_idempotent(provisioned_db):
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["user"])

    first = await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["guest", "manager"], remove=["manager", "user"])
    second = await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["guest", "manager"], remove=["manager", "user"])

    assert first == second == ["guest"]


async def test_apply_delta_rejects_unknown_role_without_writing(provisioned_db):
    with pytest.raises(UnknownRole) as exc_info:
        await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["guest", "ghost"])

    assert exc_info.value.data == {"unknown": ["ghost"]}
    assert await user_roles.get_roles(provisioned_db, TENANT, "u1") == []


async def test_removing_unheld_or_unknown_role_is_a_no_op(provisioned_db):
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["guest"])

    roles = await user_roles.apply_delta(provisioned_db, TENANT, "u1", remove=["ghost", "admin"])

    assert roles == ["guest"]


async def test_assignments_are_scoped_per_tenant(provisioned_db):
    await get_role_service().create(provisioned_db, OTHER_TENANT, "manager")
    await user_roles.apply_delta(provisioned_db, TENANT, "u1", add=["manager"])

    assert await user_roles.get_roles(provisioned_db, OTHER_TENANT, "u1") == []

    await user_roles.apply_delta(provisioned_db, OTHER_TENANT, "u1", add=["manager"])
    await user_roles.apply_delta(provisioned_db, OTHER_TENANT, "u1", remove=["manager"])

    assert await user_roles.get_roles(provisioned_db, TENANT, "u1") == ["manager"]


async def test_user_id_is_required(provisioned_db):
    with pytest.raises(ValidationError):
        await user_roles.apply_delta(provisioned_db, TENANT, "  ", add=["guest"])
