from .permissions import PermissionCreate, Permission, PermissionGroups
from .roles import RoleCreate, RoleUpdate, Role, Delta, RolePermissions
from .users import UserRoles, UserPermissions, PermissionCheck
from .matrix import MatrixCell, MatrixRow, PermissionMatrix, ToggleRequest, ToggleResult

__all__ = [
    "PermissionCreate",
    "Permission",
    "PermissionGroups",
    "RoleCreate",
    "RoleUpdate",
    "Role",
    "Delta",
    "RolePermissions",
    "UserRoles",
    "UserPermissions",
    "PermissionCheck",
    "MatrixCell",
    "MatrixRow",
    "PermissionMatrix",
    "ToggleRequest",
    "ToggleResult",
]
