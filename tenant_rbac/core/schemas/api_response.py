from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import Field

from tenant_rbac.core.schemas.base import BaseSchema


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApiResponse(BaseSchema):
    status_code: int
    error: Optional[str] = None
    detail: Optional[str] = None
    data: Optional[Any] = None
    timestamp: str = Field(default_factory=_now_iso)
