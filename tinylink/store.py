"""Link persistence: the store contract and its SQLAlchemy implementation.

The rest of the service reaches the database only through ``LinkStore``.
``SQLLinkStore`` opens one short session per operation, so a store call made
from a detached task never shares a session with the request that spawned it.

Operation Overview
==================
::
    insert_if_absent(code, url) ── INSERT (unique index) ──┬─ ok ──────► Link (refreshed)
                                                           └─ conflict ► CodeConflict
    find_by_code(code) ─────────── SELECT ... WHERE code ──► Link | None
    increment_clicks(id) ───────── UPDATE total_clicks = total_clicks + 1
    list_all() ─────────────────── SELECT ... ORDER BY created_at DESC, id DESC
    delete_by_code(code) ───────── DELETE ... WHERE code ──► bool

Key Behaviours
===============
- Uniqueness is decided by the database, never by a read before the insert.
- Click counts are incremented in SQL; the application never writes a value
  it read earlier.
- Every SQLAlchemy failure surfaces as ``StorageError`` chained to the cause.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Protocol

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from tinylink.database import Database
from tinylink.errors import CodeConflict, StorageError
from tinylink.models import Link

__all__ = ["LinkStore", "SQLLinkStore"]

logger = logging.getLogger(__name__)


class LinkStore(Protocol):
    """Persistence contract required by the allocator and redirect handler."""

    async def insert_if_absent(self, code: str, target_url: str) -> Link:
        """Insert a link unless ``code`` exists; raise ``CodeConflict`` if it does."""
        ...

    async def find_by_code(self, code: str) -> Link | None:
        ...

    async def increment_clicks(self, link_id: int) -> None:
        """Add one click and stamp ``last_clicked_at`` atomically."""
        ...

    async def list_all(self) -> list[Link]:
        """Return every link, newest first."""
        ...

    async def delete_by_code(self, code: str) -> bool:
        ...


class SQLLinkStore:
    def __init__(self, database: Database) -> None:
        self._database = database

    @contextmanager
    def _storage_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            logger.error(f"Storage failure during {operation}: {exc}")
            raise StorageError(f"{operation} failed") from exc

    async def insert_if_absent(self, code: str, target_url: str) -> Link:
        link = Link(code=code, target_url=target_url)
        with self._storage_errors("insert"):
            async with self._database.session() as session:
                session.add(link)
                try:
                    await session.commit()
                except IntegrityError as exc:
                    await session.rollback()
                    logger.debug(f"Unique index rejected code: {code}")
                    raise CodeConflict(code) from exc
                # re-read server-assigned id, created_at and total_clicks
                await session.refresh(link)
        return link

    async def find_by_code(self, code: str) -> Link | None:
        with self._storage_errors("lookup"):
            async with self._database.session() as session:
                result = await session.execute(select(Link).where(Link.code == code))
                return result.scalar_one_or_none()

    async def increment_clicks(self, link_id: int) -> None:
        with self._storage_errors("click update"):
            async with self._database.session() as session:
                await session.execute(
                    update(Link)
                    .where(Link.id == link_id)
                    .values(total_clicks=Link.total_clicks + 1, last_clicked_at=func.now())
                    .execution_options(synchronize_session=False)
                )
                await session.commit()

    async def list_all(self) -> list[Link]:
        with self._storage_errors("list"):
            async with self._database.session() as session:
                result = await session.execute(select(Link).order_by(Link.created_at.desc(), Link.id.desc()))
                return list(result.scalars().all())

    async def delete_by_code(self, code: str) -> bool:
        with self._storage_errors("delete"):
            async with self._database.session() as session:
                result = await session.execute(
                    delete(Link).where(Link.code == code).execution_options(synchronize_session=False)
                )
                await session.commit()
                return result.rowcount > 0
