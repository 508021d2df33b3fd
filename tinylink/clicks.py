"""Detached click accounting.

A redirect must never wait for, or fail because of, its click update.
``ClickRecorder.dispatch`` schedules the update as its own asyncio task and
returns at once. The task's only error sink is the log (plus a metric): a
failed update loses that one click and is not retried.
"""

import asyncio
import logging

from tinylink.metrics import CLICKS_FAILED_TOTAL, CLICKS_RECORDED_TOTAL
from tinylink.store import LinkStore

__all__ = ["ClickRecorder"]

logger = logging.getLogger(__name__)


class ClickRecorder:
    def __init__(self, store: LinkStore) -> None:
        self._store = store
        # the event loop keeps only weak references to tasks
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return len(self._pending)

    def dispatch(self, link_id: int) -> asyncio.Task[None]:
        """Schedule one click for ``link_id`` without awaiting it."""
        task = asyncio.create_task(self._record(link_id), name=f"click-accounting:{link_id}")
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _record(self, link_id: int) -> None:
        try:
            await self._store.increment_clicks(link_id)
        except Exception:
            CLICKS_FAILED_TOTAL.inc()
            logger.exception(f"Failed to update click count for link {link_id}")
        else:
            CLICKS_RECORDED_TOTAL.inc()

    async def drain(self) -> None:
        """Wait for every dispatched click update to finish."""
        while self._pending:
            await asyncio.gather(*self._pending)
