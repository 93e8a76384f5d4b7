"""
Hyperliquid perpetual funding rates.
Note: Hyperliquid settles funding every hour, unlike the 8h venues.
"""

from typing import Any, List, Optional

from .base_connector import BaseConnector
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent

HOURLY_INTERVAL = 1


class HyperliquidConnector(BaseConnector):
    """
    Hyperliquid exchange data source.

    A single metaAndAssetCtxs call returns [metadata, assetContexts];
    metadata.universe[i] names the asset whose context is assetContexts[i].
    """

    # Asset names are bare tickers (BTC, ETH)
    quote_suffix = ""

    async def fetch_payload(self) -> Optional[Any]:
        return await self._fetch_rates_endpoint()

    def normalize(self, payload: Any) -> List[FundingRate]:
        if not isinstance(payload, list) or len(payload) != 2:
            self.logger.error("Hyperliquid payload is not a [metadata, assetContexts] pair")
            return []

        metadata, contexts = payload
        universe = metadata.get('universe') if isinstance(metadata, dict) else None
        if not isinstance(universe, list) or not isinstance(contexts, list):
            self.logger.error("Hyperliquid metadata or asset contexts malformed")
            return []

        if len(universe) != len(contexts):
            self.logger.error(
                f"Hyperliquid universe/contexts misaligned ({len(universe)} vs {len(contexts)})"
            )
            return []

        rates = []
        for asset, context in zip(universe, contexts):
            if not isinstance(asset, dict) or not isinstance(context, dict):
                continue
            if not asset.get('name'):
                continue

            rate = fraction_to_percent(context.get('funding'))
            if rate is None:
                continue

            rates.append(self.make_rate(asset['name'], rate, HOURLY_INTERVAL))

        return rates
