from datetime import datetime
from typing import List, Optional

from pydantic import Field

from tenant_rbac.core.schemas import BaseSchema


class RoleBase(BaseSchema):
    description: Optional[str] = None
    inherits_from: Optional[str] = None


class RoleCreate(RoleBase):
    name: str = Field(min_length=1, max_length=100)
    permissions: List[str] = Field(default_factory=list)


class RoleUpdate(RoleBase):
    """
    Partial update. Fields left out of the body are kept; an explicit
    `"inherits_from": null` detaches the role from its parent.
    """
    permissions: Optional[List[str]] = None


class Role(RoleBase):
    name: str
    system: bool
    permissions: List[str]
    users_count: int = 0
    version: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, role, users_count: int = 0) -> "Role":
        return cls(
            name=role.name,
            description=role.description,
            inherits_from=role.inherits_from,
            system=role.system,
            permissions=sorted(role.permission_names),
            users_count=users_count,
            version=role.version,
            created_at=role.created_at,
            updated_at=role.updated_at,
        )


class Delta(BaseSchema):
    """Atomic set update: (current | add) - remove. Remove wins on overlap."""
    add: List[str] = Field(default_factory=list)
    remove: List[str] = Field(default_factory=list)


class RolePermissions(BaseSchema):
    role: str
    permissions: List[str]
    version: Optional[int] = None
