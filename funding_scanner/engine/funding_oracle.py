"""
Funding Rate Oracle - Collection and analysis of funding rates
==============================================================

Runs one full refresh cycle: query every exchange, merge and filter the
rates, then detect the arbitrage opportunities.
"""

import logging
from typing import Dict, List, Optional

from .arbitrage_detector import ArbitrageDetector
from .errors import AggregationError
from ..connectors import ConnectorManager
from ..models.funding_rate import FundingRate
from ..models.snapshot import FundingSnapshot
from ..utils.time_utils import get_utc_datetime


class FundingRateOracle:
    """
    Oracle collecting the funding rates of every exchange

    Responsibilities:
    - Query every enabled exchange concurrently
    - Drop rates that carry no usable signal
    - Build the snapshot with its opportunities and per-exchange counts
    """

    def __init__(self, connector_manager: ConnectorManager,
                 detector: Optional[ArbitrageDetector] = None):
        """
        Args:
            connector_manager: Connectors of the enabled exchanges
            detector: Arbitrage detector (default thresholds when None)
        """
        self.connector_manager = connector_manager
        self.detector = detector or ArbitrageDetector()
        self.logger = logging.getLogger(__name__)

        # Metrics
        self.total_updates = 0
        self.failed_updates = 0

    async def collect(self) -> FundingSnapshot:
        """
        Run one refresh cycle

        Returns:
            FundingSnapshot: Merged rates and ranked opportunities

        Raises:
            AggregationError: No exchange returned a usable rate
        """
        fetched_at = get_utc_datetime()
        results = await self.connector_manager.fetch_all()

        merged: List[FundingRate] = []
        for rates in results:
            if rates:
                merged.extend(rates)

        valid_rates = [rate for rate in merged if rate.is_valid]
        if len(valid_rates) < len(merged):
            self.logger.debug(f"Dropped {len(merged) - len(valid_rates)} rates without signal")

        if not valid_rates:
            self.failed_updates += 1
            self.logger.error("Every exchange failed or returned no usable rate")
            raise AggregationError()

        counts = self.count_by_exchange(valid_rates)
        self.logger.info(f"Funding rates per exchange: {counts}")

        opportunities = self.detector.detect(valid_rates)
        self.total_updates += 1

        return FundingSnapshot(
            rates=tuple(valid_rates),
            opportunities=tuple(opportunities),
            fetched_at=fetched_at,
            exchange_counts=counts
        )

    def count_by_exchange(self, rates: List[FundingRate]) -> Dict[str, int]:
        """Rate count per exchange (every configured one, even at zero) plus the total"""
        counts = {
            connector.exchange_name: 0
            for connector in self.connector_manager.get_all_connectors().values()
        }
        for rate in rates:
            counts[rate.exchange] = counts.get(rate.exchange, 0) + 1
        counts['total'] = len(rates)
        return counts
