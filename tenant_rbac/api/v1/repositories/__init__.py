from .permission_repository import PermissionRepository, get_permission_repository
from .role_repository import RoleRepository, get_role_repository
from .user_roles_repository import UserRolesRepository, get_user_roles_repository

__all__ = [
    "PermissionRepository",
    "RoleRepository",
    "UserRolesRepository",
    "get_permission_repository",
    "get_role_repository",
    "get_user_roles_repository",
]
