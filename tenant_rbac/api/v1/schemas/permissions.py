from typing import Dict, List, Optional

from pydantic import Field

from tenant_rbac.core.schemas import BaseSchema


class PermissionBase(BaseSchema):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = None


class PermissionCreate(PermissionBase):
    pass


class Permission(PermissionBase):
    resource: str
    action: str
    # False for deployment-wide permissions, True for tenant extensions
    tenant_scoped: bool = False


class PermissionGroups(BaseSchema):
    resources: Dict[str, List[Permission]]
