import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
    AsyncEngine,
)
from sqlalchemy.pool import StaticPool

from tenant_rbac.core.config import settings
from tenant_rbac.core.models import Base, Conflict

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# 1. Database Manager Class
# ----------------------------------------------------------------------

class DatabaseManager:
    """
    Manages the SQLAlchemy AsyncEngine and the AsyncSession factory.

    Encapsulates database connection setup and session creation logic for
    the application. This centralizes configuration and allows tests to
    inject an in-memory database.
    """

    def __init__(self, db_url: str, echo: Optional[bool] = None):
        """
        Initializes the DatabaseManager with the database connection URL.

        Args:
            db_url (str): The connection string for the asynchronous database driver.
            echo (bool): Log generated SQL. Defaults to settings.DEBUG.
        """
        self.db_url = db_url
        self._engine: AsyncEngine = create_async_engine(
            db_url,
            echo=settings.DEBUG if echo is None else echo,
            **self._engine_options(db_url),
        )

        self._async_session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            class_=AsyncSession,
            expire_on_commit=False,  # Prevents unnecessary loading of objects after a commit.
            autoflush=False,
            bind=self._engine,
        )

    @staticmethod
    def _engine_options(db_url: str) -> dict:
        if db_url.startswith("sqlite"):
            if ":memory:" in db_url or db_url.rstrip("/").endswith("sqlite+aiosqlite:"):
                # One shared connection, otherwise every checkout sees an empty database
                return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
            return {"connect_args": {"check_same_thread": False}}
        return {
            "pool_pre_ping": True,
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
        }

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def async_session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._async_session_factory

    async def init_db(self) -> None:
        """Create every table registered on Base. Safe to call repeatedly."""
        # Import models so they are registered on the metadata
        from tenant_rbac.api.v1 import models  # noqa: F401

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database schema ready (%s)", self._engine.url.render_as_string(hide_password=True))

    async def dispose(self) -> None:
        await self._engine.dispose()


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Commit the work done inside the block as one unit.

    If the block raises, or the commit fails, the session is rolled back so no
    partial write survives. A version mismatch detected at flush time
    (StaleDataError) and a unique-key race (IntegrityError) surface as Conflict.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError as exc:
        await db.rollback()
        logger.warning("Concurrent modification detected: %s", exc)
        raise Conflict("The record was modified concurrently. Re-read and retry.") from exc
    except IntegrityError as exc:
        await db.rollback()
        logger.warning("Integrity violation during commit: %s", exc.orig)
        raise Conflict("The write conflicts with existing data. Re-read and retry.") from exc
    except Exception:
        await db.rollback()
        raise


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


# ----------------------------------------------------------------------
# 2. FastAPI Dependency
# ----------------------------------------------------------------------

async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    Services commit or roll back explicitly; anything left pending when the
    request fails is rolled back here.

    Yields:
        AsyncSession: An asynchronous SQLAlchemy session bound to the database.
    """
    async_session_factory = get_db_manager(request).async_session_factory

    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
