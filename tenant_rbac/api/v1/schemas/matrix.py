from typing import Dict, List

from tenant_rbac.core.schemas import BaseSchema
from tenant_rbac.api.v1.schemas.permissions import Permission


class MatrixCell(BaseSchema):
    # Direct grant or wildcard role
    granted: bool
    # Reachable only through the parent chain
    inherited: bool = False


class MatrixRow(BaseSchema):
    name: str
    system: bool
    wildcard: bool
    version: int
    cells: Dict[str, MatrixCell]


class PermissionMatrix(BaseSchema):
    permissions: List[Permission]
    resources: Dict[str, List[str]]
    roles: List[MatrixRow]


class ToggleRequest(BaseSchema):
    permission: str


class ToggleResult(BaseSchema):
    role: str
    permission: str
    granted: bool
    version: int
