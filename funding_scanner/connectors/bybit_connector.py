"""
Bybit linear perpetual funding rates.
"""

from typing import Any, Dict, List, Optional

from .base_connector import BaseConnector, SourcePayload
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent, parse_interval_hours
from funding_scanner.utils.time_utils import parse_epoch

DEFAULT_INTERVAL_MINUTES = 480


class BybitConnector(BaseConnector):
    """
    Bybit exchange data source.

    Tickers carry the rates; instruments-info carries fundingInterval in
    minutes.
    """

    async def fetch_payload(self) -> Optional[SourcePayload]:
        return await self._fetch_with_info()

    @staticmethod
    def _result_list(data: Any) -> Optional[list]:
        if isinstance(data, dict) and isinstance(data.get('result'), dict):
            items = data['result'].get('list')
            if isinstance(items, list):
                return items
        return None

    def _intervals(self, info: Optional[Any]) -> Dict[str, float]:
        """symbol -> settlement interval in hours"""
        intervals = {}
        for instrument in self._result_list(info) or []:
            if isinstance(instrument, dict) and instrument.get('symbol'):
                minutes = parse_interval_hours(
                    instrument.get('fundingInterval'), default=DEFAULT_INTERVAL_MINUTES
                )
                intervals[instrument['symbol']] = minutes / 60
        return intervals

    def normalize(self, payload: SourcePayload) -> List[FundingRate]:
        items = self._result_list(payload.rates)
        if items is None:
            raise ValueError("Bybit tickers missing result.list")

        intervals = self._intervals(payload.info)
        rates = []

        for item in items:
            if not isinstance(item, dict):
                continue
            symbol = item.get('symbol') or ''
            if not symbol.endswith(self.quote_suffix) or not item.get('fundingRate'):
                continue

            rate = fraction_to_percent(item['fundingRate'])
            if rate is None:
                continue

            rates.append(self.make_rate(
                symbol,
                rate,
                intervals.get(symbol),
                next_funding_time=parse_epoch(item.get('nextFundingTime'))
            ))

        return rates
