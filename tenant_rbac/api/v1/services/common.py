import re
from typing import Iterable, List, Optional, Set

from tenant_rbac.core.models import Conflict, TenantScopeMissing, ValidationError

TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def ensure_tenant(tenant_id: Optional[str]) -> str:
    """Every operation is scoped to exactly one tenant."""
    if tenant_id is None or not str(tenant_id).strip():
        raise TenantScopeMissing("A tenant scope is required for this operation.")
    tenant_id = str(tenant_id).strip()
    if not TENANT_ID_PATTERN.match(tenant_id):
        raise ValidationError(f"Invalid tenant id: {tenant_id!r}", data={"tenant_id": tenant_id})
    return tenant_id


def normalize_names(names: Optional[Iterable[str]]) -> List[str]:
    """Trim entries, drop empty ones and de-duplicate, keeping first-seen order."""
    seen: Set[str] = set()
    result: List[str] = []
    for name in names or ():
        name = (name or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        result.append(name)
    return result


def apply_delta(current: Iterable[str], add: Iterable[str], remove: Iterable[str]) -> Set[str]:
    """(current | add) - remove. A name present in both add and remove ends up removed."""
    return (set(current) | set(add)) - set(remove)


def check_version(name: str, actual: int, expected: Optional[int]) -> None:
    if expected is not None and expected != actual:
        raise Conflict(
            f"Role '{name}' was modified concurrently (expected version {expected}, found {actual}).",
            data={"role": name, "expected_version": expected, "actual_version": actual},
        )
