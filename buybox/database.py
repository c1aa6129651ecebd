# buybox/database.py

from functools import lru_cache
import os

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base

from buybox.core.config import get_settings

Base = declarative_base()


def _database_url() -> str:
    settings = get_settings()
    # Use environment variable directly if settings is empty
    database_url = settings.DATABASE_URL or os.environ.get('DATABASE_URL', '')
    if not database_url:
        raise ValueError("DATABASE_URL is not set in environment variables")

    # Convert postgresql:// to postgresql+asyncpg:// for async support
    if database_url.startswith('postgresql://'):
        database_url = database_url.replace('postgresql://', 'postgresql+asyncpg://', 1)
    return database_url


@lru_cache()
def get_engine() -> AsyncEngine:
    """Engine is created on first use so importing models never needs a database"""
    return create_async_engine(
        _database_url(),
        echo=False,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=1800
    )


@lru_cache()
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        get_engine(),
        class_=AsyncSession,
        expire_on_commit=False
    )


def async_session() -> AsyncSession:
    return get_sessionmaker()()

