import ssl

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.ext.asyncio.session import AsyncSession
from sqlmodel import SQLModel

from chuka_market.core.config import Environment, Settings


def build_db_url(settings: Settings) -> URL:
    # this constructs a connection string to our database
    return URL.create(
        drivername="postgresql+asyncpg",
        username=settings.db_user,
        password=settings.db_password,
        host=settings.db_host,
        port=settings.db_port,
        database=settings.db_name,
    )


def build_connect_args(settings: Settings) -> dict:
    # upgrade connection to use SSL, pinned to the provided CA if there is one
    connect_args = {}
    if settings.db_ssl_cert_path:
        connect_args["ssl"] = ssl.create_default_context(
            cafile=settings.db_ssl_cert_path
        )
    elif settings.environment == Environment.PRODUCTION:
        connect_args["ssl"] = ssl.create_default_context()
    return connect_args


def create_engine(settings: Settings) -> AsyncEngine:
    # the pool is the only admission control, requests beyond
    # pool_size + max_overflow wait for a free connection
    return create_async_engine(
        build_db_url(settings),
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        connect_args=build_connect_args(settings),
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # objects remain available after committing a transaction
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)


async def ping(session: AsyncSession) -> None:
    await session.execute(text("SELECT 1"))
