from fastapi import status

from tenant_rbac.core.config import settings
from tests.utils import API, if_match, tenant_headers


def test_matrix_projection(provisioned_client):
    response = provisioned_client.get(f"{API}/matrix", headers=tenant_headers())

    assert response.status_code == 200
    data = response.json()["data"]
    rows = {row["name"]: row for row in data["roles"]}
    assert len(data["permissions"]) == 19
    assert rows["admin"]["wildcard"] is True
    assert rows["manager"]["cells"]["users:write"] == {"granted": True, "inherited": False}
    assert rows["manager"]["cells"]["profile:write"] == {"granted": False, "inherited": True}


def test_toggle_cell(provisioned_client):
    response = provisioned_client.post(
        f"{API}/matrix/manager/toggle", json={"permission": "audit:read"}, headers=tenant_headers()
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"role": "manager", "permission": "audit:read", "granted": True, "version": 2}

    matrix = provisioned_client.get(f"{API}/matrix", headers=tenant_headers()).json()["data"]
    manager = next(row for row in matrix["roles"] if row["name"] == "manager")
    assert manager["cells"]["audit:read"]["granted"] is True


def test_toggle_wildcard_cell_is_rejected(provisioned_client):
    response = provisioned_client.post(
        f"{API}/matrix/admin/toggle", json={"permission": "users:read"}, headers=tenant_headers()
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["error"] == "WildcardRoleImmutable"


def test_toggle_with_stale_version_conflicts(provisioned_client):
    provisioned_client.post(f"{API}/matrix/manager/toggle", json={"permission": "audit:read"}, headers=if_match(1))

    response = provisioned_client.post(
        f"{API}/matrix/manager/toggle", json={"permission": "reports:export"}, headers=if_match(1)
    )

    assert response.status_code == status.HTTP_409_CONFLICT


def test_api_key_is_enforced_when_configured(provisioned_client, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", "s3cret")

    missing = provisioned_client.get(f"{API}/matrix", headers=tenant_headers())
    wrong = provisioned_client.get(f"{API}/matrix", headers=tenant_headers(**{"X-API-Key": "nope"}))
    right = provisioned_client.get(f"{API}/matrix", headers=tenant_headers(**{"X-API-Key": "s3cret"}))

    assert missing.status_code == status.HTTP_403_FORBIDDEN
    assert wrong.status_code == status.HTTP_403_FORBIDDEN
    assert right.status_code == 200
