from . import (
    matrix,
    permissions,
    roles,
    tenant,
    users,
)

__all__ = [
    "matrix",
    "permissions",
    "roles",
    "tenant",
    "users",
]
