"""
Shared pytest configuration.

Every test gets its own in-memory SQLite database. Service tests use the
`db` session directly; route tests drive `create_app()` through TestClient so
the lifespan creates the schema and seeds the permission catalog.
"""

import os

# Must be set before tenant_rbac reads its settings
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("REQUIRE_ROLE_VERSION", "true")
os.environ.setdefault("ROLE_DELETE_POLICY", "cascade")

import pytest
from fastapi.testclient import TestClient

from tenant_rbac.api.v1.services import get_provisioning_service
from tenant_rbac.db import DatabaseManager
from tenant_rbac.main import create_app
from tests.utils import API, IN_MEMORY_URL, TENANT, tenant_headers


@pytest.fixture()
async def db_manager():
    manager = DatabaseManager(IN_MEMORY_URL, echo=False)
    await manager.init_db()
    try:
        yield manager
    finally:
        await manager.dispose()


@pytest.fixture()
async def db(db_manager):
    async with db_manager.async_session_factory() as session:
        await get_provisioning_service().seed_catalog(session)
        yield session


@pytest.fixture()
async def provisioned_db(db):
    """Session whose tenant already carries the default roles."""
    await get_provisioning_service().provision_tenant(db, TENANT)
    return db


@pytest.fixture()
def app():
    return create_app(db_manager=DatabaseManager(IN_MEMORY_URL, echo=False))


@pytest.fixture()
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def provisioned_client(client):
    response = client.post(f"{API}/tenant/provision", headers=tenant_headers())
    assert response.status_code == 200
    return client


@pytest.fixture()
async def file_db_manager(tmp_path):
    """
    File-backed database with a real connection pool, so two sessions hold
    two connections the way two concurrent requests would.
    """
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'rbac.db'}", echo=False)
    await manager.init_db()
    async with manager.async_session_factory() as session:
        await get_provisioning_service().seed_catalog(session)
    try:
        yield manager
    finally:
        await manager.dispose()
