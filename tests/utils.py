from typing import Dict

from tenant_rbac.core.config import settings

TENANT = "acme"
OTHER_TENANT = "globex"
IN_MEMORY_URL = "sqlite+aiosqlite:///:memory:"
API = settings.API_V1_STR


def tenant_headers(tenant_id: str = TENANT, **extra: str) -> Dict[str, str]:
    headers = {settings.TENANT_HEADER: tenant_id}
    headers.update(extra)
    return headers


def if_match(version: int, tenant_id: str = TENANT) -> Dict[str, str]:
    return tenant_headers(tenant_id, **{"If-Match": str(version)})
