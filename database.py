from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from core.config import settings

DATABASE_URL = settings.DATABASE_URL

Base = declarative_base()


def make_engine(url: str = DATABASE_URL, echo: bool = False) -> AsyncEngine:
    # a bare in-memory SQLite database lives inside a single connection
    if url.startswith("sqlite") and (":memory:" in url or url.endswith("://")):
        return create_async_engine(url, echo=echo, poolclass=StaticPool,
                                   connect_args={"check_same_thread": False})
    return create_async_engine(url, echo=echo)


def make_session_factory(bind: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=bind, expire_on_commit=False)


engine = make_engine(DATABASE_URL, echo=settings.DATABASE_ECHO)
AsyncSessionLocal = make_session_factory(engine)
