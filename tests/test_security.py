import pytest
from fastapi import status

from tenant_rbac.core.config import settings
from tenant_rbac.core.models import TenantScopeMissing, ValidationError
from tenant_rbac.core.security import get_tenant_id, parse_version, require_expected_version


@pytest.mark.parametrize("raw, expected", [("3", 3), ('"3"', 3), ('W/"12"', 12), (" 4 ", 4), (None, None), ("", None)])
def test_parse_version(raw, expected):
    assert parse_version(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "0", "-1", '"v2"'])
def test_parse_version_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_version(raw)


def test_missing_version_is_a_precondition_failure_when_required(monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_ROLE_VERSION", True)

    with pytest.raises(ValidationError) as exc_info:
        require_expected_version(None)

    assert exc_info.value.status_code == status.HTTP_428_PRECONDITION_REQUIRED


def test_missing_version_is_allowed_when_not_required(monkeypatch):
    monkeypatch.setattr(settings, "REQUIRE_ROLE_VERSION", False)

    assert require_expected_version(None) is None


def test_tenant_id_is_required():
    with pytest.raises(TenantScopeMissing):
        get_tenant_id(None)
    with pytest.raises(TenantScopeMissing):
        get_tenant_id("   ")
    assert get_tenant_id(" acme ") == "acme"
