"""Database handle and session management for TinyLink.

This module provides the SQLAlchemy async engine wrapper used by the link
store. A ``Database`` is constructed once at application startup, handed to
every component that needs it, and disposed at shutdown.

Flow Diagram — Database Lifecycle
=================================
::
    ┌─────────────┐
    │  lifespan   │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Database(   │
    │   url)      │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ create_all()│
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ session()   │
    │ per store   │
    │ operation   │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ close()     │
    │ on shutdown │
    └─────────────┘

How to Use
===========
**Step 1 — Create on startup**::
    database = Database(settings.DATABASE_URL)
    await database.create_all()

**Step 2 — Open a session**::
    async with database.session() as session:
        result = await session.execute(select(Link))

**Step 3 — Cleanup on shutdown**::
    await database.close()

Key Behaviours
===============
- Sessions do not expire objects on commit, so rows stay readable after
  the session closes.
- Connection pooling is sized for production on server databases; SQLite
  keeps SQLAlchemy's default pool.
- Tables are created on startup.

Classes:
    Base:  SQLAlchemy declarative base for all models.
    Database:  Engine plus session factory with an explicit lifecycle.
"""

from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

__all__ = ["Base", "Database"]


class Base(DeclarativeBase):
    pass


class Database:
    def __init__(self, url: str, echo: bool = False) -> None:
        options: dict[str, Any] = {"echo": echo, "pool_pre_ping": True}
        if make_url(url).get_backend_name() != "sqlite":
            options.update(pool_size=20, max_overflow=10)

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **options)
        self._sessions = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def session(self) -> AsyncSession:
        return self._sessions()

    async def create_all(self) -> None:
        # models register themselves on Base.metadata at import
        from tinylink import models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def close(self) -> None:
        await self.engine.dispose()
