"""
Gate USDT futures funding rates.
"""

from typing import Any, List, Optional

from .base_connector import BaseConnector
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent, parse_interval_hours
from funding_scanner.utils.time_utils import parse_epoch

SECONDS_PER_HOUR = 3600


class GateConnector(BaseConnector):
    """Gate contracts carry the funding rate and funding_interval (seconds) directly"""

    quote_suffix = "_USDT"

    async def fetch_payload(self) -> Optional[Any]:
        return await self._fetch_rates_endpoint()

    def normalize(self, payload: Any) -> List[FundingRate]:
        contracts = [
            contract for contract in self._expect_list(payload, "Gate contracts")
            if isinstance(contract, dict)
            and isinstance(contract.get('name'), str)
            and contract['name'].endswith(self.quote_suffix)
        ]

        rates = []
        for contract in contracts:
            if not contract.get('funding_rate'):
                continue

            rate = fraction_to_percent(contract['funding_rate'])
            if rate is None:
                continue

            interval = parse_interval_hours(
                contract.get('funding_interval'),
                divisor=SECONDS_PER_HOUR,
                default=self.default_interval
            )

            rates.append(self.make_rate(
                contract['name'],
                rate,
                interval,
                next_funding_time=parse_epoch(contract.get('funding_next_apply'), unit_ms=False)
            ))

        self.logger.debug(f"Gate USDT contracts: {len(contracts)}, rates: {len(rates)}")
        return rates
