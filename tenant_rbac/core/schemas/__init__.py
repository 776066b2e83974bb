from tenant_rbac.core.schemas.base import BaseSchema
from tenant_rbac.core.schemas.api_response import ApiResponse

__all__ = ["BaseSchema", "ApiResponse"]
