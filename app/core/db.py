from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from app.core.config import settings

# Базовый класс для моделей
Base = declarative_base()


def build_engine(database_url: str):
    """Создание асинхронного движка; SQLite работает без пула соединений"""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, poolclass=NullPool)
    return create_async_engine(database_url, pool_pre_ping=True)


def build_session_factory(bind) -> async_sessionmaker:
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


# Асинхронный движок
engine = build_engine(settings.database_url)

# Сессии
SessionLocal = build_session_factory(engine)


async def init_models() -> None:
    """Создание таблиц при старте приложения"""
    import app.db.models  # noqa: F401  регистрирует таблицы в Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


# Функция для dependency injection в FastAPI
async def get_db():
    async with SessionLocal() as session:
        yield session
