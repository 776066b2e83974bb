from .catalog_service import PermissionCatalog, get_permission_catalog, parse_permission_name
from .role_service import RoleService, get_role_service, UNSET
from .inheritance import InheritanceResolver, RoleGraph, get_inheritance_resolver
from .role_permissions_service import RolePermissionsService, get_role_permissions_service
from .user_roles_service import UserRolesService, get_user_roles_service
from .authorization_service import AuthorizationService, get_authorization_service
from .matrix_service import PermissionMatrixService, get_permission_matrix_service
from .provisioning_service import ProvisioningService, get_provisioning_service

__all__ = [
    "PermissionCatalog",
    "get_permission_catalog",
    "parse_permission_name",
    "RoleService",
    "get_role_service",
    "UNSET",
    "InheritanceResolver",
    "RoleGraph",
    "get_inheritance_resolver",
    "RolePermissionsService",
    "get_role_permissions_service",
    "UserRolesService",
    "get_user_roles_service",
    "AuthorizationService",
    "get_authorization_service",
    "PermissionMatrixService",
    "get_permission_matrix_service",
    "ProvisioningService",
    "get_provisioning_service",
]
