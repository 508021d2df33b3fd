"""Service container and FastAPI dependencies.

Shared resources are built once in the application lifespan, kept on
``app.state.services``, and reached from endpoints through the dependency
functions below. Nothing here is a module-level singleton: tests build
their own container against a throwaway database.
"""

import logging
import random
from dataclasses import dataclass

from fastapi import Depends, Request

from tinylink.allocator import CodeAllocator, RetryPolicy
from tinylink.cache import LinkCache
from tinylink.clicks import ClickRecorder
from tinylink.config import Settings
from tinylink.database import Database
from tinylink.redirect import RedirectHandler
from tinylink.store import LinkStore, SQLLinkStore

__all__ = [
    "LinkServices",
    "get_allocator",
    "get_cache",
    "get_redirect_handler",
    "get_services",
    "get_store",
]

logger = logging.getLogger(__name__)


@dataclass
class LinkServices:
    """Everything a request needs, with one lifecycle.

    Attributes:
        settings: Application settings.
        database: Engine and session factory.
        store: Link persistence.
        recorder: Detached click accounting.
        allocator: Code allocation for new links.
        redirects: Code resolution for visits.
        cache: Optional redirect cache.
    """

    settings: Settings
    database: Database
    store: LinkStore
    recorder: ClickRecorder
    allocator: CodeAllocator
    redirects: RedirectHandler
    cache: LinkCache | None = None

    @classmethod
    def build(
        cls,
        settings: Settings,
        database: Database,
        cache: LinkCache | None = None,
        rng: random.Random | None = None,
    ) -> "LinkServices":
        store = SQLLinkStore(database)
        recorder = ClickRecorder(store)
        return cls(
            settings=settings,
            database=database,
            store=store,
            recorder=recorder,
            allocator=CodeAllocator(store, RetryPolicy.from_settings(settings, rng=rng)),
            redirects=RedirectHandler(store, recorder, cache=cache, reserved_paths=settings.RESERVED_PATHS),
            cache=cache,
        )

    async def close(self) -> None:
        """Drain click updates, then release the cache and the database."""
        if self.recorder.pending:
            logger.info(f"Waiting for {self.recorder.pending} click updates")
        await self.recorder.drain()
        if self.cache is not None:
            await self.cache.close()
        await self.database.close()


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


def get_services(request: Request) -> LinkServices:
    return request.app.state.services


def get_store(services: LinkServices = Depends(get_services)) -> LinkStore:
    return services.store


def get_cache(services: LinkServices = Depends(get_services)) -> LinkCache | None:
    return services.cache


def get_allocator(services: LinkServices = Depends(get_services)) -> CodeAllocator:
    return services.allocator


def get_redirect_handler(services: LinkServices = Depends(get_services)) -> RedirectHandler:
    return services.redirects
