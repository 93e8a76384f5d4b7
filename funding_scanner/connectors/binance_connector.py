"""
Binance USDT-M futures funding rates.
"""

from typing import Any, Dict, List, Optional

from .base_connector import BaseConnector, SourcePayload
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent, parse_interval_hours
from funding_scanner.utils.time_utils import parse_epoch


class BinanceConnector(BaseConnector):
    """
    Reads premiumIndex for the rates and fundingInfo for the settlement
    interval of the symbols that do not settle every 8 hours.
    """

    async def fetch_payload(self) -> Optional[SourcePayload]:
        return await self._fetch_with_info()

    def _intervals(self, info: Optional[Any]) -> Dict[str, float]:
        """symbol -> settlement interval in hours"""
        intervals = {}
        if not isinstance(info, list):
            return intervals

        for entry in info:
            if isinstance(entry, dict) and entry.get('symbol'):
                intervals[entry['symbol']] = parse_interval_hours(
                    entry.get('fundingIntervalHours'), default=self.default_interval
                )
        return intervals

    def normalize(self, payload: SourcePayload) -> List[FundingRate]:
        intervals = self._intervals(payload.info)
        rates = []

        for item in self._expect_list(payload.rates, "Binance premiumIndex"):
            if not isinstance(item, dict):
                continue
            symbol = item.get('symbol') or ''
            if not symbol.endswith(self.quote_suffix):
                continue

            rate = fraction_to_percent(item.get('lastFundingRate'))
            if rate is None:
                continue

            rates.append(self.make_rate(
                symbol,
                rate,
                intervals.get(symbol),
                next_funding_time=parse_epoch(item.get('nextFundingTime'))
            ))

        return rates
