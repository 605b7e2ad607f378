"""Route test fixtures: FastAPI app over the per-test SQLite database.

Invariants:
    - get_db overridden to use the test engine
    - get_mailer overridden with the recording FakeMailer
    - db_manager patched: background scan tracking uses db_manager.session()

Design Decisions:
    - Background tasks run before the httpx ASGITransport call returns, so
      tests can assert scan rows right after the response
"""

import pytest
from httpx import ASGITransport, AsyncClient

import dislink.infrastructure.database as db_module
from dislink.api.dependencies import get_mailer
from dislink.infrastructure.database import get_db, DatabaseSessionManager
from dislink.main import app


@pytest.fixture
async def client(test_engine, test_session_factory, mailer):
    """FastAPI test client with DB and mailer dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
def owner_headers(owner):
    return {"X-User-Id": str(owner.id)}


@pytest.fixture
async def live_code(client, owner, owner_headers) -> str:
    res = await client.post(
        f"/api/v1/profiles/{owner.id}/connection-codes", headers=owner_headers,
    )
    assert res.status_code == 201
    return res.json()["code"]
