"""
Opportunity Model - A detected funding rate arbitrage opportunity
=================================================================

Opportunities are derived from a pair of funding rates quoted for the same
symbol on two exchanges. They are recomputed wholesale on every refresh
and never mutated.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional

from funding_scanner.utils.math_utils import as_json_number


class OpportunityType(str, Enum):
    """Arbitrage strategies"""
    DIFFERENT_PERIOD = "different_period"  # Negative rate on the sooner-settling exchange
    SAME_PERIOD = "same_period"            # Rate differential, identical settlement cycles


@dataclass(frozen=True)
class ArbitrageOpportunity:
    """
    Arbitrage opportunity between two exchanges

    For DIFFERENT_PERIOD, long_exchange is the short-period side (collects
    the negative rate) and short_exchange is the long-period side, whose
    rate is reported as reference only.
    """
    symbol: str
    type: OpportunityType
    long_exchange: str
    short_exchange: str
    long_rate: Decimal
    short_rate: Decimal
    rate_diff: Decimal
    annual_yield: Decimal

    # Same period only
    settlement_period: Optional[float] = None

    # Different period only
    settlement_period1: Optional[float] = None
    settlement_period2: Optional[float] = None
    expected_profit: Optional[Decimal] = None

    @property
    def is_different_period(self) -> bool:
        return self.type == OpportunityType.DIFFERENT_PERIOD

    @property
    def pair_name(self) -> str:
        """Pair identifier (ex: "Bybit_Binance")"""
        return f"{self.long_exchange}_{self.short_exchange}"

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation"""
        data: Dict[str, Any] = {
            "symbol": self.symbol,
            "type": self.type.value,
            "longExchange": self.long_exchange,
            "shortExchange": self.short_exchange,
            "longRate": float(self.long_rate),
            "shortRate": float(self.short_rate),
            "rateDiff": float(self.rate_diff),
            "annualYield": float(self.annual_yield),
        }

        if self.is_different_period:
            data["settlementPeriod1"] = as_json_number(self.settlement_period1)
            data["settlementPeriod2"] = as_json_number(self.settlement_period2)
            data["expectedProfit"] = float(self.expected_profit)
        else:
            data["settlementPeriod"] = as_json_number(self.settlement_period)

        return data
