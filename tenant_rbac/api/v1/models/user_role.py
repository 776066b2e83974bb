from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import mapped_column, Mapped

from tenant_rbac.core.models import Base


class UserRole(Base):
    """
    Association linking an external user to a Role scoped within a Tenant.
    Users live in the identity service; only their id is stored here.
    """
    __tablename__ = "user_roles"

    # --- Composite Primary Key ---
    # A User can hold a specific Role only once within a Tenant
    tenant_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    role_id: Mapped[UUID] = mapped_column(
        ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True, index=True
    )

    def __repr__(self):
        return f"<UserRole(User ID='{self.user_id}', Role ID='{self.role_id}', Tenant ID='{self.tenant_id}')>"
