from .base import Base, IdentifiedMixin, TimestampMixin, utcnow
from .exceptions import (
    RBACError,
    DuplicateRole,
    UnknownRole,
    UnknownParentRole,
    UnknownPermission,
    SystemRoleImmutable,
    WildcardRoleImmutable,
    CyclicInheritance,
    Conflict,
    TenantScopeMissing,
    ValidationError,
    PermissionDenied,
)

__all__ = [
    "Base",
    "IdentifiedMixin",
    "TimestampMixin",
    "utcnow",
    "RBACError",
    "DuplicateRole",
    "UnknownRole",
    "UnknownParentRole",
    "UnknownPermission",
    "SystemRoleImmutable",
    "WildcardRoleImmutable",
    "CyclicInheritance",
    "Conflict",
    "TenantScopeMissing",
    "ValidationError",
    "PermissionDenied",
]
