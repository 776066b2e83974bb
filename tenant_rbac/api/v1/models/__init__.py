from .permissions import Permission
from .roles import Role, WILDCARD
from .role_permission import RolePermission
from .user_role import UserRole


__all__ = [
    "Permission",
    "Role",
    "RolePermission",
    "UserRole",
    "WILDCARD",
]
