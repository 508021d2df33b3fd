"""Short code resolution for the redirect path.

Redirect Flow
=============
::
    ┌─────────────┐
    │ resolve(    │
    │   code)     │
    └──────┬──────┘
           ▼
    ┌─────────────┐  reserved / malformed
    │ guard       ├──────────────────────► ReservedPath / LinkNotFound
    └──────┬──────┘
           ▼
    ┌─────────────┐  hit
    │ cache (opt) ├──────────┐
    └──────┬──────┘          │
      miss ▼                 │
    ┌─────────────┐  absent  │
    │ find_by_code├──────────┼──────────► LinkNotFound
    └──────┬──────┘          │
           ▼                 │
    ┌─────────────┐          │
    │ dispatch    │◄─────────┘
    │ click task  │ (detached, not awaited)
    └──────┬──────┘
           ▼
      target URL

Key Behaviours
===============
- The lookup is the only blocking step; the caller can answer as soon as
  ``resolve`` returns.
- Click accounting runs as a detached task owned by ``ClickRecorder``. Its
  failures are logged there and never reach the caller.
- Repeated calls for the same code return the same target until the link
  is deleted. A cache fill is confirmed against the store afterwards and
  evicted when the row has gone or changed.
"""

import logging
from collections.abc import Iterable

from tinylink.cache import LinkCache
from tinylink.clicks import ClickRecorder
from tinylink.enums import RedirectOutcome
from tinylink.errors import LinkNotFound, ReservedPath, StorageError
from tinylink.metrics import REDIRECTS_TOTAL
from tinylink.models import Link
from tinylink.store import LinkStore
from tinylink.validation import is_valid_code_format

__all__ = ["RedirectHandler"]

logger = logging.getLogger(__name__)


class RedirectHandler:
    def __init__(
        self,
        store: LinkStore,
        recorder: ClickRecorder,
        cache: LinkCache | None = None,
        reserved_paths: Iterable[str] = (),
    ) -> None:
        self._store = store
        self._recorder = recorder
        self._cache = cache
        self._reserved_paths = frozenset(reserved_paths)

    async def resolve(self, code: str) -> str:
        """Return the target URL for ``code`` and dispatch its click update.

        Raises:
            ReservedPath: If ``code`` is a path owned by the web layer.
            LinkNotFound: If no link owns ``code``.
            StorageError: If the lookup itself fails.
        """
        if code in self._reserved_paths:
            REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.RESERVED).inc()
            raise ReservedPath(code)

        if not is_valid_code_format(code):
            REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.NOT_FOUND).inc()
            raise LinkNotFound(code)

        cached = await self._cache.get(code) if self._cache is not None else None
        if cached is not None:
            link_id, target_url = cached.id, cached.target_url
        else:
            link = await self._store.find_by_code(code)
            if link is None:
                REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.NOT_FOUND).inc()
                logger.info(f"Redirect miss for code: {code}")
                raise LinkNotFound(code)
            link_id, target_url = link.id, link.target_url
            if self._cache is not None:
                await self._fill_cache(link)

        self._recorder.dispatch(link_id)
        REDIRECTS_TOTAL.labels(outcome=RedirectOutcome.FOUND).inc()
        return target_url

    async def _fill_cache(self, link: Link) -> None:
        await self._cache.put(link)
        # a delete that ran before this put has already evicted the code
        try:
            current = await self._store.find_by_code(link.code)
        except StorageError:
            logger.warning(f"Could not confirm cache entry for code: {link.code}")
            current = None
        if current is None or current.id != link.id:
            await self._cache.evict(link.code)
