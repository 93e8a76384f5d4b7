"""
Bitget USDT-FUTURES funding rates.
"""

from typing import Any, Dict, List, Optional

from .base_connector import BaseConnector, SourcePayload
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent, parse_interval_hours


class BitgetConnector(BaseConnector):
    """Bitget exchange data source; contracts carry fundInterval in hours"""

    async def fetch_payload(self) -> Optional[SourcePayload]:
        return await self._fetch_with_info()

    def _intervals(self, info: Optional[Any]) -> Dict[str, float]:
        intervals = {}
        contracts = info.get('data') if isinstance(info, dict) else None
        if not isinstance(contracts, list):
            return intervals

        for contract in contracts:
            if isinstance(contract, dict) and contract.get('symbol'):
                intervals[contract['symbol']] = parse_interval_hours(
                    contract.get('fundInterval'), default=self.default_interval
                )
        return intervals

    def normalize(self, payload: SourcePayload) -> List[FundingRate]:
        if not isinstance(payload.rates, dict):
            raise ValueError("Bitget tickers is not an object")

        intervals = self._intervals(payload.info)
        rates = []

        for item in self._expect_list(payload.rates.get('data'), "Bitget tickers data"):
            if not isinstance(item, dict):
                continue
            if not item.get('symbol') or not item.get('fundingRate'):
                continue

            rate = fraction_to_percent(item['fundingRate'])
            if rate is None:
                continue

            rates.append(self.make_rate(item['symbol'], rate, intervals.get(item['symbol'])))

        return rates
