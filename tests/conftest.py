import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from portalar.core.config import Settings
from portalar.core.context import AppContext
from portalar.main import create_app
from portalar.services.auth import hash_password
from portalar.storage.facade import Storage
from portalar.storage.memory import MemoryAdapter

ADMIN_PASSWORD = "correct-horse-battery"
JWT_SECRET = "test-jwt-secret-0123456789abcdef0123456789"


@pytest.fixture(scope="session")
def admin_password():
    return ADMIN_PASSWORD


@pytest.fixture(scope="session")
def password_hash():
    # Low cost factor keeps the suite fast
    return hash_password(ADMIN_PASSWORD, rounds=4)


@pytest.fixture
def make_settings(tmp_path, password_hash):
    def _make(**overrides):
        values = {
            "_env_file": None,
            "database_type": "sqlite",
            "sqlite_path": str(tmp_path / "portalar.db"),
            "admin_password_hash": password_hash,
            "admin_jwt_secret": JWT_SECRET,
            "perplexity_api_key": None,
            "perplexity_mock_mode": False,
            "enable_perplexity": True,
            "redis_url": None,
        }
        values.update(overrides)
        return Settings(**values)

    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def storage():
    return Storage(MemoryAdapter(), "memory")


@pytest_asyncio.fixture
async def context(settings):
    """Started application context; ASGITransport does not run lifespan"""
    ctx = AppContext.from_settings(settings)
    await ctx.startup()
    yield ctx
    await ctx.shutdown()


@pytest_asyncio.fixture
async def client(context):
    app = create_app(context=context)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers(context):
    return {"Authorization": f"Bearer {context.auth.issue_token()}"}
