from typing import Any, Optional

from fastapi import status


class RBACError(Exception):
    """
    Base class for every error surfaced by the authorization core.

    `code` is the stable, machine-readable error kind; `message` is display text;
    `data` carries structured context (unknown names, versions, ...).
    """

    code: str = "RBACError"
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, data: Optional[Any] = None, status_code: Optional[int] = None):
        self.message = message
        self.data = data
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class DuplicateRole(RBACError):
    code = "DuplicateRole"
    status_code = status.HTTP_409_CONFLICT


class UnknownRole(RBACError):
    code = "UnknownRole"
    status_code = status.HTTP_404_NOT_FOUND


class UnknownParentRole(RBACError):
    code = "UnknownParentRole"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class UnknownPermission(RBACError):
    code = "UnknownPermission"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class SystemRoleImmutable(RBACError):
    code = "SystemRoleImmutable"
    status_code = status.HTTP_403_FORBIDDEN


class WildcardRoleImmutable(RBACError):
    code = "WildcardRoleImmutable"
    status_code = status.HTTP_403_FORBIDDEN


class CyclicInheritance(RBACError):
    code = "CyclicInheritance"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class Conflict(RBACError):
    """Version mismatch or concurrent edit. Callers may re-read and retry."""
    code = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class TenantScopeMissing(RBACError):
    code = "TenantScopeMissing"
    status_code = status.HTTP_400_BAD_REQUEST


class ValidationError(RBACError):
    code = "ValidationError"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class PermissionDenied(RBACError):
    code = "PermissionDenied"
    status_code = status.HTTP_403_FORBIDDEN
