"""
Funding rate data model.
"""

from dataclasses import dataclass
from decimal import Decimal
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from funding_scanner.utils.math_utils import as_json_number
from funding_scanner.utils.time_utils import to_iso_string

DEFAULT_SETTLEMENT_INTERVAL = 8


class ExchangeName(str, Enum):
    """Supported exchanges, valued by their display name"""
    BINANCE = "Binance"
    BYBIT = "Bybit"
    BITGET = "Bitget"
    OKX = "OKX"
    HYPERLIQUID = "HyperLiquid"
    GATE = "Gate"


@dataclass(frozen=True)
class FundingRate:
    """Current funding rate of one symbol on one exchange, in percent"""
    symbol: str
    exchange: str
    current_rate: Decimal
    settlement_interval: float = DEFAULT_SETTLEMENT_INTERVAL
    next_funding_time: Optional[datetime] = None
    funding_time: Optional[datetime] = None

    @property
    def is_special_interval(self) -> bool:
        """Settles on something other than the usual 8 hours"""
        return self.settlement_interval != DEFAULT_SETTLEMENT_INTERVAL

    @property
    def is_valid(self) -> bool:
        """
        Rate carries a usable signal.

        Zero is treated as "no data", not as a true zero rate.
        """
        if not self.symbol or not self.exchange:
            return False
        if not isinstance(self.current_rate, Decimal):
            return False
        return self.current_rate.is_finite() and self.current_rate != 0

    @property
    def annual_rate(self) -> Decimal:
        """Annualized rate in percent"""
        periods_per_year = Decimal(365 * 24) / Decimal(str(self.settlement_interval))
        return self.current_rate * periods_per_year

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation"""
        data: Dict[str, Any] = {
            "symbol": self.symbol,
            "exchange": self.exchange,
            "currentRate": str(self.current_rate),
            "isSpecialInterval": self.is_special_interval,
            "settlementInterval": as_json_number(self.settlement_interval),
        }
        if self.next_funding_time:
            data["nextFundingTime"] = to_iso_string(self.next_funding_time)
        if self.funding_time:
            data["fundingTime"] = to_iso_string(self.funding_time)
        return data
