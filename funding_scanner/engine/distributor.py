"""
Snapshot Distributor - Pull and push access to funding snapshots
================================================================

Three entry points share the same cache and refresh path:

- a subscriber connects: it gets the cached snapshot, if any;
- a subscriber asks for data: TTL-guarded cache read, answered to it only;
- the periodic timer: unconditional refresh, broadcast to everyone.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

from .errors import AggregationError
from .snapshot_cache import SnapshotCache
from ..models.config import DistributionConfig
from ..models.snapshot import FundingSnapshot, error_payload
from ..utils.async_utils import maybe_await, safe_ensure_future

BroadcastCallback = Callable[[FundingSnapshot], Union[None, Awaitable[None]]]


class SnapshotDistributor:
    """
    Owner of the snapshot cache and of the periodic broadcast loop
    """

    def __init__(self,
                 cache: SnapshotCache,
                 config: Optional[DistributionConfig] = None,
                 broadcast: Optional[BroadcastCallback] = None):
        """
        Args:
            cache: Snapshot cache (owned by the distributor from now on)
            config: Broadcast interval
            broadcast: Callback receiving every periodic snapshot (sync or async)
        """
        self.cache = cache
        self.config = config or DistributionConfig()
        self.broadcast = broadcast
        self.logger = logging.getLogger(__name__)

        self._subscribers: Set[str] = set()
        self._task: Optional[asyncio.Future] = None
        self.is_running = False

        # Metrics
        self.broadcast_count = 0
        self.failed_broadcasts = 0

    @property
    def subscribers(self) -> Set[str]:
        return set(self._subscribers)

    # =============================================================================
    # LIFECYCLE MANAGEMENT
    # =============================================================================

    def start(self) -> None:
        """Start the periodic refresh + broadcast loop"""
        if self.is_running:
            self.logger.warning("Distributor already running")
            return

        self.logger.info(
            f"Starting snapshot distributor (every {self.config.broadcast_interval_seconds}s)"
        )
        self.is_running = True
        self._task = safe_ensure_future(self._update_loop())

    async def stop(self) -> None:
        """Stop the loop and any refresh in flight, and wait for both to exit"""
        self.logger.info("Stopping snapshot distributor")
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        await self.cache.close()

    async def _update_loop(self) -> None:
        """First cycle immediately, then one per interval"""
        while self.is_running:
            try:
                await self.broadcast_once()
            except Exception as e:
                self.failed_broadcasts += 1
                self.logger.error(f"Error in distributor update loop: {e}")
            await asyncio.sleep(self.config.broadcast_interval_seconds)

    async def broadcast_once(self) -> Optional[FundingSnapshot]:
        """
        Refresh bypassing the TTL and broadcast the result.

        Returns:
            The broadcast snapshot, None when the refresh or the callback failed
        """
        try:
            snapshot = await self.cache.refresh()
        except AggregationError as e:
            self.failed_broadcasts += 1
            self.logger.error(f"Periodic refresh failed, nothing broadcast: {e}")
            return None

        if self.broadcast is None:
            return snapshot

        try:
            await maybe_await(self.broadcast, snapshot)
        except Exception as e:
            self.failed_broadcasts += 1
            self.logger.error(f"Broadcast callback failed: {e}")
            return None

        self.broadcast_count += 1
        self.logger.debug(f"Broadcast snapshot to {len(self._subscribers)} subscribers")
        return snapshot

    # =============================================================================
    # SUBSCRIBERS
    # =============================================================================

    def connect(self, subscriber_id: str) -> Optional[FundingSnapshot]:
        """Register a subscriber and return the cached snapshot (no refresh is forced)"""
        self._subscribers.add(subscriber_id)
        self.logger.info(f"Subscriber connected: {subscriber_id}")
        return self.cache.current

    def disconnect(self, subscriber_id: str) -> None:
        self._subscribers.discard(subscriber_id)
        self.logger.info(f"Subscriber disconnected: {subscriber_id}")

    async def request_snapshot(self, subscriber_id: str) -> FundingSnapshot:
        """
        Explicit request of one subscriber, served through the cache TTL

        Raises:
            AggregationError: No data could be fetched and nothing is cached
        """
        self.logger.debug(f"Snapshot requested by {subscriber_id}")
        return await self.cache.get()

    # =============================================================================
    # PULL INTERFACE
    # =============================================================================

    async def get_snapshot(self) -> FundingSnapshot:
        """TTL-guarded snapshot, raises AggregationError on total failure"""
        return await self.cache.get()

    async def get_snapshot_payload(self) -> Dict[str, Any]:
        """Wire payload of the current snapshot, or the error payload"""
        try:
            snapshot = await self.get_snapshot()
        except AggregationError as e:
            return error_payload(e.message)
        return snapshot.to_payload()
