import logging

from tenant_rbac.api.v1.routers import matrix, permissions, roles, tenant, users
from tenant_rbac.core.config import settings

logger = logging.getLogger(__name__)


def bootstrap_app(app):
    prefix = settings.API_V1_STR

    app.include_router(roles.router, prefix=prefix, tags=["Roles"])
    app.include_router(permissions.router, prefix=prefix, tags=["Permissions"])
    app.include_router(users.router, prefix=prefix, tags=["Users"])
    app.include_router(matrix.router, prefix=prefix, tags=["Permission matrix"])
    app.include_router(tenant.router, prefix=prefix, tags=["Tenant"])
    logger.info("RBAC routes registered under %s", prefix)
