"""
Funding Rate Scanner
"""

__version__ = "1.0.0"
__author__ = "Funding Bot Team"
__description__ = "Cross-exchange funding rate aggregator and arbitrage scanner"

from .engine import FundingRateOracle, SnapshotCache, SnapshotDistributor
from .models.config import ScannerConfig

__all__ = [
    'FundingRateOracle',
    'SnapshotCache',
    'SnapshotDistributor',
    'ScannerConfig'
]
