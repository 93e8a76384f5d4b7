"""
Wiring of the scanner components from a configuration.
"""

from typing import Optional

from .arbitrage_detector import ArbitrageDetector
from .distributor import BroadcastCallback, SnapshotDistributor
from .funding_oracle import FundingRateOracle
from .snapshot_cache import SnapshotCache
from ..connectors import ConnectorManager, HttpClient
from ..models.config import ScannerConfig


def create_oracle(config: ScannerConfig, http_client: HttpClient) -> FundingRateOracle:
    """Oracle over the enabled exchanges of config"""
    return FundingRateOracle(
        ConnectorManager(config, http_client),
        ArbitrageDetector(config.arbitrage)
    )


def create_distributor(config: ScannerConfig,
                       http_client: HttpClient,
                       broadcast: Optional[BroadcastCallback] = None) -> SnapshotDistributor:
    """Distributor owning a cache fed by a fresh oracle"""
    oracle = create_oracle(config, http_client)
    cache = SnapshotCache(oracle.collect, ttl_seconds=config.cache.ttl_seconds)
    return SnapshotDistributor(cache, config.distribution, broadcast)
