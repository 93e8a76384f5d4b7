"""
Arbitrage Detector - Ranked funding rate arbitrage opportunities
================================================================

Two strategies are evaluated for every pair of exchanges quoting the same
symbol:

- different period: the sooner-settling exchange pays a negative rate, so
  going long there collects it before the other side is charged;
- same period: both settle together, the position earns the rate
  differential at every settlement.

The detector is pure: the same rates always give the same, identically
ordered, opportunities.
"""

import logging
from decimal import Decimal
from itertools import combinations
from typing import Dict, Iterable, List, Optional

from ..models.config import ArbitrageConfig
from ..models.funding_rate import FundingRate
from ..models.opportunity import ArbitrageOpportunity, OpportunityType
from ..utils.math_utils import annualize


class ArbitrageDetector:
    """
    Detector of funding rate arbitrage opportunities

    Thresholds are percent values, compared exactly in Decimal.
    """

    def __init__(self, config: Optional[ArbitrageConfig] = None):
        config = config or ArbitrageConfig()
        self.min_expected_profit = Decimal(str(config.min_expected_profit))
        self.min_annual_yield = Decimal(str(config.min_annual_yield))
        self.noise_floor = Decimal(str(config.noise_floor))

        self.logger = logging.getLogger(__name__)

    # =============================================================================
    # DETECTION
    # =============================================================================

    def detect(self, rates: Iterable[FundingRate]) -> List[ArbitrageOpportunity]:
        """
        Compute the ranked opportunities of a merged rate set

        Args:
            rates: Valid funding rates of every exchange

        Returns:
            different_period opportunities first, then same_period ones,
            each group by descending annual yield
        """
        opportunities = []

        for symbol, symbol_rates in self._group_by_symbol(rates).items():
            for rate1, rate2 in combinations(symbol_rates, 2):
                if rate1.settlement_interval != rate2.settlement_interval:
                    opportunity = self._evaluate_different_period(symbol, rate1, rate2)
                else:
                    opportunity = self._evaluate_same_period(symbol, rate1, rate2)

                if opportunity is not None:
                    opportunities.append(opportunity)

        ranked = self.rank(opportunities)

        different = sum(1 for opp in ranked if opp.is_different_period)
        self.logger.info(
            f"Arbitrage opportunities: {len(ranked)} "
            f"(different period: {different}, same period: {len(ranked) - different})"
        )
        return ranked

    @staticmethod
    def rank(opportunities: List[ArbitrageOpportunity]) -> List[ArbitrageOpportunity]:
        """different_period before same_period, then descending annual yield (stable)"""
        return sorted(
            opportunities,
            key=lambda opp: (0 if opp.is_different_period else 1, -opp.annual_yield)
        )

    @staticmethod
    def _group_by_symbol(rates: Iterable[FundingRate]) -> Dict[str, List[FundingRate]]:
        grouped: Dict[str, List[FundingRate]] = {}
        for rate in rates:
            grouped.setdefault(rate.symbol, []).append(rate)
        return grouped

    # =============================================================================
    # STRATEGIES
    # =============================================================================

    def _evaluate_different_period(self, symbol: str, rate1: FundingRate,
                                   rate2: FundingRate) -> Optional[ArbitrageOpportunity]:
        """Long the sooner-settling exchange when its rate is negative"""
        if rate1.settlement_interval < rate2.settlement_interval:
            short_period, long_period = rate1, rate2
        else:
            short_period, long_period = rate2, rate1

        if short_period.current_rate >= 0:
            return None

        expected_profit = abs(short_period.current_rate)
        if expected_profit <= self.min_expected_profit:
            return None

        return ArbitrageOpportunity(
            symbol=symbol,
            type=OpportunityType.DIFFERENT_PERIOD,
            long_exchange=short_period.exchange,
            short_exchange=long_period.exchange,
            long_rate=short_period.current_rate,
            short_rate=long_period.current_rate,
            rate_diff=abs(short_period.current_rate - long_period.current_rate),
            annual_yield=annualize(expected_profit, short_period.settlement_interval),
            settlement_period1=short_period.settlement_interval,
            settlement_period2=long_period.settlement_interval,
            expected_profit=expected_profit
        )

    def _evaluate_same_period(self, symbol: str, rate1: FundingRate,
                              rate2: FundingRate) -> Optional[ArbitrageOpportunity]:
        """Long the lower rate, short the higher one"""
        rate_diff = rate1.current_rate - rate2.current_rate
        if abs(rate_diff) < self.noise_floor:
            return None

        annual_yield = annualize(abs(rate_diff), rate1.settlement_interval)
        if annual_yield <= self.min_annual_yield:
            return None

        low, high = (rate2, rate1) if rate_diff > 0 else (rate1, rate2)

        return ArbitrageOpportunity(
            symbol=symbol,
            type=OpportunityType.SAME_PERIOD,
            long_exchange=low.exchange,
            short_exchange=high.exchange,
            long_rate=low.current_rate,
            short_rate=high.current_rate,
            rate_diff=abs(rate_diff),
            annual_yield=annual_yield,
            settlement_period=rate1.settlement_interval
        )
