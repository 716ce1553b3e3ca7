"""
Database engine, session management, and base model class.

This module sets up SQLAlchemy 2.0 with async support for the "sql" storage
backend. Key components:

  - engine: The async database engine
  - AsyncSessionLocal: Factory for creating async database sessions
  - Base: Declarative base class that all ORM models inherit from
  - get_db(): FastAPI dependency that provides a session per request

The engine is created lazily by SQLAlchemy: no connection is opened until the
first statement runs, so importing this module is harmless when the JSON
backend is selected.

Session lifecycle:
  Each API request gets its own session via get_db(). The session commits on
  success and on domain errors (writes made before the error, such as a
  re-encrypted PII field, are kept), and rolls back on anything else.
"""

from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase

from manavault.config import settings
from manavault.exceptions import ManaVaultError


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
)

# expire_on_commit=False prevents lazy-load errors after commit in async context
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass


async def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/items")
        async def list_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except ManaVaultError:
            # Entities are not updated transactionally with each other, so
            # writes that completed before a domain error are kept.
            await session.commit()
            raise
        except Exception:
            await session.rollback()
            raise
