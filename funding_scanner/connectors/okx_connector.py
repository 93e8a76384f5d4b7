"""
OKX USDT-margined swap funding rates.

The listing endpoint only enumerates instruments, so the funding rate of
each instrument needs its own call. Calls are issued in paced batches to
stay under the OKX rate limit.
"""

import asyncio
from decimal import Decimal
from typing import Any, List, Optional

from .base_connector import BaseConnector
from funding_scanner.models.config import OKXEndpointConfig
from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.utils.math_utils import fraction_to_percent, safe_decimal
from funding_scanner.utils.time_utils import parse_epoch

MS_PER_HOUR = Decimal(3_600_000)


class OKXConnector(BaseConnector):
    """
    OKX exchange data source.
    """

    quote_suffix = "-USDT-SWAP"
    config: OKXEndpointConfig

    def list_instruments(self, listing: Any) -> List[str]:
        """USDT-margined perpetual instrument ids from the listing payload"""
        entries = listing.get('data') if isinstance(listing, dict) else None
        if not isinstance(entries, list):
            self.logger.error("OKX instrument listing has no data array")
            return []

        return [
            entry['instId'] for entry in entries
            if isinstance(entry, dict)
            and isinstance(entry.get('instId'), str)
            and entry['instId'].endswith(self.quote_suffix)
        ]

    async def _fetch_instrument(self, inst_id: str) -> Optional[Any]:
        return await self._request(
            self.config.funding_rate_url,
            name=f"OKX funding-rate {inst_id}",
            params={'instId': inst_id},
            timeout=self.config.per_call_timeout_seconds
        )

    async def fetch_payload(self) -> Optional[List[Any]]:
        """
        Enumerate instruments, then fetch their funding rates batch by batch.

        Returns:
            Per-instrument responses that succeeded, or None when the
            listing itself is unavailable
        """
        listing = await self._fetch_rates_endpoint()
        if listing is None:
            return None

        instruments = self.list_instruments(listing)
        batch_size = self.config.batch_size
        batch_count = (len(instruments) + batch_size - 1) // batch_size
        self.logger.info(f"OKX USDT swaps: {len(instruments)} in {batch_count} batches")

        responses = []
        for start in range(0, len(instruments), batch_size):
            batch = instruments[start:start + batch_size]
            self.logger.debug(f"OKX batch {start // batch_size + 1}/{batch_count}")

            results = await asyncio.gather(
                *(self._fetch_instrument(inst_id) for inst_id in batch),
                return_exceptions=True
            )

            for inst_id, result in zip(batch, results):
                if isinstance(result, Exception):
                    self.logger.warning(f"OKX funding-rate {inst_id} failed: {result}")
                elif result is not None:
                    responses.append(result)

            if start + batch_size < len(instruments):
                await asyncio.sleep(self.config.batch_delay_seconds)

        self.logger.info(f"OKX funding rates received: {len(responses)}/{len(instruments)}")
        return responses

    def _parse_entry(self, response: Any) -> Optional[FundingRate]:
        data = response.get('data') if isinstance(response, dict) else None
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            return None
        item = data[0]

        inst_id = item.get('instId')
        fraction = safe_decimal(item.get('fundingRate'))
        if not inst_id or fraction is None or not fraction.is_finite() or fraction == 0:
            return None

        next_ms = safe_decimal(item.get('nextFundingTime'))
        current_ms = safe_decimal(item.get('fundingTime'))
        next_time = parse_epoch(next_ms)
        funding_time = parse_epoch(current_ms)
        if next_time is None or funding_time is None:
            return None

        interval = float((next_ms - current_ms) / MS_PER_HOUR)
        if interval <= 0:
            interval = self.default_interval

        return self.make_rate(
            inst_id,
            fraction_to_percent(fraction),
            interval,
            next_funding_time=next_time,
            funding_time=funding_time
        )

    def normalize(self, payload: List[Any]) -> List[FundingRate]:
        rates = []
        for response in self._expect_list(payload, "OKX funding responses"):
            rate = self._parse_entry(response)
            if rate is not None:
                rates.append(rate)
        return rates
