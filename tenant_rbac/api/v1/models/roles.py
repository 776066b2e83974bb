from typing import List, Optional, Set

from sqlalchemy import Boolean, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship, mapped_column, Mapped

from tenant_rbac.core.models import Base, TimestampMixin

WILDCARD = "*"


class Role(TimestampMixin, Base):
    """A tenant-scoped bundle of permissions with an optional parent role."""
    __tablename__ = "roles"

    tenant_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(500))
    system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # --- Hierarchy Implementation ---
    # Parent referenced by name inside the same tenant. A child role inherits
    # all permissions of its parent chain.
    inherits_from: Mapped[Optional[str]] = mapped_column(String(100))

    # Optimistic concurrency token, bumped by SQLAlchemy on every UPDATE
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    # Guard for inheritance edits. Moved, under a compare-and-set, by every
    # write that adds a link into this role's chain or deletes the role.
    lineage: Mapped[int] = mapped_column(Integer, default=1, server_default="1", nullable=False)

    # Direct grants (catalog names or the wildcard)
    grants: Mapped[List["RolePermission"]] = relationship(
        back_populates="role",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="_tenant_role_uc"),
    )
    __mapper_args__ = {"version_id_col": version}

    @property
    def permission_names(self) -> Set[str]:
        return {grant.permission for grant in self.grants}

    @property
    def is_wildcard(self) -> bool:
        return WILDCARD in self.permission_names

    def __repr__(self):
        return f"<Role(name='{self.name}', tenant_id='{self.tenant_id}', inherits_from='{self.inherits_from}')>"
