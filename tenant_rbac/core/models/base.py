import uuid
from datetime import datetime, timezone

from sqlalchemy import DateTime, Uuid
from sqlalchemy.orm import Mapped, mapped_column, DeclarativeBase


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------------------------------------
# Base Configuration (required for SQLAlchemy 2.0)
# -----------------------------------------------------------
class Base(DeclarativeBase):
    """Declarative base shared by every table of the service."""
    pass


class IdentifiedMixin:
    """Common columns: a UUID primary key and the creation timestamp."""

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )


class TimestampMixin(IdentifiedMixin):
    """Adds updated_at, refreshed on every ORM update."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
