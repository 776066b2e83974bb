from typing import Optional

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import mapped_column, Mapped

from tenant_rbac.core.models import Base, IdentifiedMixin


class Permission(IdentifiedMixin, Base):
    """Defines an atomic action in RESOURCE:ACTION format."""
    __tablename__ = "permissions"

    # NULL tenant_id marks a deployment-wide permission visible to every tenant
    tenant_id: Mapped[Optional[str]] = mapped_column(String(64), index=True)
    # The permission string (e.g., 'users:read', 'reports:export')
    name: Mapped[str] = mapped_column(String(100), index=True, nullable=False)
    resource: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    # Moved by every grant of a tenant permission; a remove holding an
    # older value fails instead of orphaning the grant
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="_tenant_permission_uc"),
    )
    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<Permission(name='{self.name}', tenant_id='{self.tenant_id}')>"
