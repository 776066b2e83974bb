from fastapi import status

from tests.utils import API, OTHER_TENANT, tenant_headers


def test_list_permissions(client):
    response = client.get(f"{API}/permissions", headers=tenant_headers())

    assert response.status_code == 200
    permissions = response.json()["data"]
    assert len(permissions) == 19
    users_read = next(p for p in permissions if p["name"] == "users:read")
    assert users_read == {
        "name": "users:read",
        "description": "View users",
        "resource": "users",
        "action": "read",
        "tenant_scoped": False,
    }


def test_grouped_permissions(client):
    response = client.get(f"{API}/permissions/grouped", headers=tenant_headers())

    groups = response.json()["data"]["resources"]
    assert [p["name"] for p in groups["sessions"]] == ["sessions:read", "sessions:revoke"]


def test_add_and_remove_tenant_permission(client):
    created = client.post(f"{API}/permissions", json={"name": "invoices:approve"}, headers=tenant_headers())

    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["data"]["tenant_scoped"] is True

    other = client.get(f"{API}/permissions", headers=tenant_headers(OTHER_TENANT)).json()["data"]
    assert "invoices:approve" not in [p["name"] for p in other]

    removed = client.delete(f"{API}/permissions/invoices:approve", headers=tenant_headers())
    assert removed.status_code == 200


def test_catalog_errors(provisioned_client):
    provisioned_client.post(f"{API}/permissions", json={"name": "invoices:approve"}, headers=tenant_headers())
    provisioned_client.post(
        f"{API}/roles/manager/permissions", json={"add": ["invoices:approve"]}, headers=tenant_headers()
    )
    cases = [
        (provisioned_client.post(f"{API}/permissions", json={"name": "invoices"}, headers=tenant_headers()),
         422, "ValidationError"),
        (provisioned_client.post(f"{API}/permissions", json={"name": "users:read"}, headers=tenant_headers()),
         409, "Conflict"),
        (provisioned_client.delete(f"{API}/permissions/invoices:approve", headers=tenant_headers()),
         409, "Conflict"),
        (provisioned_client.delete(f"{API}/permissions/users:read", headers=tenant_headers()),
         422, "ValidationError"),
        (provisioned_client.delete(f"{API}/permissions/billing:read", headers=tenant_headers()),
         422, "UnknownPermission"),
    ]
    for response, status_code, error in cases:
        assert response.status_code == status_code
        assert response.json()["error"] == error


def test_provision_is_idempotent(client):
    first = client.post(f"{API}/tenant/provision", headers=tenant_headers())
    second = client.post(f"{API}/tenant/provision", headers=tenant_headers())

    assert first.status_code == second.status_code == 200
    assert [role["name"] for role in first.json()["data"]] == ["admin", "guest", "user", "manager"]
    assert [(role["name"], role["version"]) for role in second.json()["data"]] == [
        (role["name"], role["version"]) for role in first.json()["data"]
    ]


def test_provision_reports_user_counts(provisioned_client):
    provisioned_client.post(f"{API}/users/u1/roles", json={"add": ["guest"]}, headers=tenant_headers())

    response = provisioned_client.post(f"{API}/tenant/provision", headers=tenant_headers())

    counts = {role["name"]: role["users_count"] for role in response.json()["data"]}
    assert counts == {"admin": 0, "guest": 1, "user": 0, "manager": 0}
