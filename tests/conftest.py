"""Shared pytest fixtures for store, service and API tests."""

import datetime
import itertools
import random
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from tinylink.config import Settings
from tinylink.database import Database
from tinylink.dependencies import LinkServices
from tinylink.errors import CodeConflict, StorageError
from tinylink.main import app
from tinylink.models import Link


class InMemoryLinkStore:
    """Dict-backed LinkStore with the same conflict semantics as the SQL store."""

    def __init__(self) -> None:
        self.links: dict[str, Link] = {}
        self.insert_calls: list[str] = []
        self.fail_increments = False
        self._ids = itertools.count(1)

    async def insert_if_absent(self, code: str, target_url: str) -> Link:
        self.insert_calls.append(code)
        if code in self.links:
            raise CodeConflict(code)
        link = Link(
            id=next(self._ids),
            code=code,
            target_url=target_url,
            total_clicks=0,
            last_clicked_at=None,
            created_at=datetime.datetime.now(datetime.timezone.utc),
        )
        self.links[code] = link
        return link

    async def find_by_code(self, code: str) -> Link | None:
        return self.links.get(code)

    async def increment_clicks(self, link_id: int) -> None:
        if self.fail_increments:
            raise StorageError("click update failed")
        for link in self.links.values():
            if link.id == link_id:
                link.total_clicks += 1
                link.last_clicked_at = datetime.datetime.now(datetime.timezone.utc)

    async def list_all(self) -> list[Link]:
        return sorted(self.links.values(), key=lambda link: (link.created_at, link.id), reverse=True)

    async def delete_by_code(self, code: str) -> bool:
        return self.links.pop(code, None) is not None


@pytest.fixture
def memory_store() -> InMemoryLinkStore:
    return InMemoryLinkStore()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'tinylink.db'}",
        CACHE_ENABLED=False,
        BASE_URL="http://sho.rt/",
    )


@pytest_asyncio.fixture
async def database(settings: Settings) -> AsyncGenerator[Database, None]:
    db = Database(settings.DATABASE_URL)
    await db.create_all()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def services(settings: Settings, database: Database) -> AsyncGenerator[LinkServices, None]:
    services = LinkServices.build(settings, database, rng=random.Random(1234))
    yield services
    await services.close()


@pytest_asyncio.fixture
async def client(services: LinkServices) -> AsyncGenerator[AsyncClient, None]:
    app.state.services = services

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    del app.state.services
