import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from chuka_market.api.dependencies import get_async_session
from chuka_market.api.main import create_app
from chuka_market.core.config import Settings
from chuka_market.models.product_model import Product  # noqa: F401 registers the table

DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        environment="testing",
        upload_dir=str(tmp_path / "uploads"),
        auth_required=False,
    )


@pytest_asyncio.fixture()
async def engine():
    engine = create_async_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        # ensure that we are connecting to the same
        # in memory database
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture()
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture()
def app(settings, session_factory):
    app = create_app(settings)

    async def override_get_async_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    return app


@pytest_asyncio.fixture()
async def async_client(app) -> AsyncClient:
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client
