from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import relationship, mapped_column, Mapped

from tenant_rbac.core.models import Base


class RolePermission(Base):
    """Association table holding the permissions granted directly to a Role."""
    __tablename__ = "role_permissions"

    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True
    )
    # A catalog permission name or the wildcard marker
    permission: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)

    role: Mapped["Role"] = relationship(back_populates="grants")

    def __repr__(self):
        return f"<RolePermission(Role ID='{self.role_id}', permission='{self.permission}')>"
