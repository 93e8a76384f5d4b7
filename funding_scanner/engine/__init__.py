from .errors import ScannerError, AggregationError
from .arbitrage_detector import ArbitrageDetector
from .funding_oracle import FundingRateOracle
from .snapshot_cache import SnapshotCache
from .distributor import SnapshotDistributor

__all__ = [
    "ScannerError", "AggregationError",
    "ArbitrageDetector", "FundingRateOracle",
    "SnapshotCache", "SnapshotDistributor"
]
