"""
Snapshot cache with TTL and single-flight refresh.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, NamedTuple, Optional

from .errors import AggregationError
from ..models.snapshot import FundingSnapshot


class CacheEntry(NamedTuple):
    snapshot: FundingSnapshot
    stamp: float  # monotonic clock reading at store time


class SnapshotCache:
    """
    Holds the latest snapshot.

    The entry is replaced by a single assignment, so readers always see a
    complete snapshot. At most one refresh runs at a time: callers arriving
    while one is in flight await the same task.
    """

    def __init__(self,
                 refresher: Callable[[], Awaitable[FundingSnapshot]],
                 ttl_seconds: float = 60.0,
                 clock: Callable[[], float] = time.monotonic):
        self._refresher = refresher
        self.ttl_seconds = ttl_seconds
        self._clock = clock

        self._entry: Optional[CacheEntry] = None
        self._inflight: Optional[asyncio.Task] = None

        self.refresh_count = 0
        self.logger = logging.getLogger(__name__)

    @property
    def current(self) -> Optional[FundingSnapshot]:
        """Latest snapshot, without any I/O"""
        entry = self._entry
        return entry.snapshot if entry else None

    @property
    def age_seconds(self) -> Optional[float]:
        entry = self._entry
        return self._clock() - entry.stamp if entry else None

    @property
    def is_refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def is_fresh(self, max_age: Optional[float] = None) -> bool:
        """Snapshot present and younger than max_age (TTL by default)"""
        max_age = self.ttl_seconds if max_age is None else max_age
        age = self.age_seconds
        return age is not None and age < max_age

    async def get(self, max_age: Optional[float] = None) -> FundingSnapshot:
        """
        Return the cached snapshot when fresh, refresh otherwise.

        Raises:
            AggregationError: Refresh failed and nothing was ever cached
        """
        if self.is_fresh(max_age):
            self.logger.debug(f"Serving cached snapshot ({self.age_seconds:.1f}s old)")
            return self._entry.snapshot

        try:
            return await self.refresh()
        except AggregationError:
            previous = self.current
            if previous is None:
                raise
            self.logger.warning("Refresh failed, serving previous snapshot")
            return previous

    async def refresh(self) -> FundingSnapshot:
        """
        Run a refresh, or join the one already in flight.

        Raises:
            AggregationError: Refresh failed; the previous snapshot is kept
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._do_refresh())
        # shield: a cancelled waiter must not cancel the shared refresh
        return await asyncio.shield(self._inflight)

    async def _do_refresh(self) -> FundingSnapshot:
        self.refresh_count += 1
        snapshot = await self._refresher()
        self._entry = CacheEntry(snapshot, self._clock())
        return snapshot

    async def close(self) -> None:
        """Cancel the refresh in flight, if any, and wait for it to finish"""
        task = self._inflight
        if task is None or task.done():
            return
        self.logger.info("Cancelling in-flight refresh")
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            self.logger.warning(f"In-flight refresh ended with an error: {e}")
