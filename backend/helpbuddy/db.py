from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase

from helpbuddy import config

ASYNC_DB_URL = config.ASYNC_DB_URL

class Base(DeclarativeBase):
    pass

engine = create_async_engine(ASYNC_DB_URL, echo=False, pool_pre_ping=True)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

async def get_db():
    async with SessionLocal() as session:
        yield session

async def create_all() -> None:
    # Em produção o schema vem do alembic (backend/migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
