from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from .config import settings

# SQLite connections must not outlive the event loop that opened them
_engine_options = {"poolclass": NullPool} if settings.DATABASE_URL.startswith("sqlite") else {"pool_pre_ping": True}

engine = create_async_engine(settings.DATABASE_URL, **_engine_options)
SessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db():
    async with SessionLocal() as session:
        yield session
