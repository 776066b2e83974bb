from typing import List

from tenant_rbac.core.schemas import BaseSchema


class UserRoles(BaseSchema):
    user_id: str
    roles: List[str]


class UserPermissions(BaseSchema):
    user_id: str
    permissions: List[str]


class PermissionCheck(BaseSchema):
    user_id: str
    permission: str
    granted: bool
