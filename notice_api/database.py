from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from notice_api.config import settings
from notice_api.middleware import install_query_counter
from notice_api.routing import MASTER, SLAVE, RoutingSession


def build_session_factory(master: AsyncEngine, slave: AsyncEngine) -> async_sessionmaker:
    """Return a session factory that routes each statement to *master* or *slave*."""
    return async_sessionmaker(
        class_=AsyncSession,
        sync_session_class=RoutingSession,
        expire_on_commit=False,
        target_engines={MASTER: master.sync_engine, SLAVE: slave.sync_engine},
    )


# Module-level engines allow tests to build a factory around a test engine.
master_engine = create_async_engine(
    settings.MASTER_DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)
slave_engine = create_async_engine(
    settings.slave_database_url,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

# Register the per-request SQL query counter on both pools.
install_query_counter(master_engine)
install_query_counter(slave_engine)

async_session = build_session_factory(master_engine, slave_engine)


class Base(DeclarativeBase):
    pass


async def get_db():
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
