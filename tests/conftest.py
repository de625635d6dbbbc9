import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from doughmain.core.config import Settings
from doughmain.core.database import Base
from doughmain.main import create_app
from fakes import ADMIN_KEY, FakeAggregator


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        admin_key=ADMIN_KEY,
        jwt_secret="test-jwt-secret",
        sync_enabled=False,
    )


@pytest.fixture
def aggregator():
    return FakeAggregator()


@pytest_asyncio.fixture
async def app(settings, aggregator):
    app = create_app(settings, aggregator=aggregator)
    async with app.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield app
    await app.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def store(app):
    return app.state.store


@pytest.fixture
def identity(app):
    return app.state.identity


@pytest_asyncio.fixture
async def test_user(identity):
    return await identity.create_user(
        "user@example.com", "password123", display_name="Test User"
    )


@pytest_asyncio.fixture
async def admin_user(identity):
    user = await identity.create_user("admin@example.com", "password123")
    await identity.set_custom_user_claims(user.uid, {"admin": True})
    return await identity.get_user(user.uid)


@pytest.fixture
def auth_headers_user(identity, test_user):
    return {"Authorization": f"Bearer {identity.create_id_token(test_user)}"}


@pytest.fixture
def auth_headers_admin(identity, admin_user):
    return {"Authorization": f"Bearer {identity.create_id_token(admin_user)}"}
