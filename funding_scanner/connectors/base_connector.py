"""
Base connector class shared by every exchange data source.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from datetime import datetime
from typing import Any, List, NamedTuple, Optional

from .http_client import HttpClient
from funding_scanner.models.config import ExchangeEndpointConfig
from funding_scanner.models.funding_rate import FundingRate, DEFAULT_SETTLEMENT_INTERVAL


class SourcePayload(NamedTuple):
    """Rates payload plus the companion metadata payload (None when unavailable)"""
    rates: Any
    info: Optional[Any] = None


class BaseConnector(ABC):
    """
    Base class for all exchange data sources.

    Subclasses implement the network part (fetch_payload) and the pure
    parsing part (normalize). fetch_rates glues both together and never
    raises.
    """

    quote_suffix = "USDT"

    def __init__(self,
                 exchange_key: str,
                 config: ExchangeEndpointConfig,
                 http_client: HttpClient,
                 default_interval: float = DEFAULT_SETTLEMENT_INTERVAL):
        self._exchange_key = exchange_key
        self.config = config
        self.http = http_client
        self.default_interval = default_interval

        self.logger = logging.getLogger(f"funding_scanner.connectors.{exchange_key}")

    @property
    def exchange_key(self) -> str:
        return self._exchange_key

    @property
    def exchange_name(self) -> str:
        """Display name written in every rate"""
        return self.config.name

    # ====== Abstract Methods (Must be implemented by subclasses) ======

    @abstractmethod
    async def fetch_payload(self) -> Optional[Any]:
        """Fetch the raw data of this source, None when unavailable"""
        pass

    @abstractmethod
    def normalize(self, payload: Any) -> List[FundingRate]:
        """Convert the raw data into funding rates"""
        pass

    # ====== Common Methods ======

    async def fetch_rates(self) -> Optional[List[FundingRate]]:
        """
        Fetch and normalize the funding rates of this exchange.

        Returns:
            List of rates (possibly empty), or None when the source is down
        """
        payload = await self.fetch_payload()
        if payload is None:
            self.logger.warning(f"No data from {self.exchange_name}")
            return None

        try:
            rates = self.normalize(payload)
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            self.logger.error(f"Unexpected {self.exchange_name} payload shape: {e}")
            return []

        self.logger.debug(f"Normalized {len(rates)} rates from {self.exchange_name}")
        return rates

    async def _request(self, url: str, name: Optional[str] = None, **kwargs) -> Optional[Any]:
        """Request one endpoint of this exchange with the configured timeout"""
        kwargs.setdefault("timeout", self.config.timeout_seconds)
        return await self.http.request_json(name or self.exchange_name, url, **kwargs)

    async def _fetch_rates_endpoint(self) -> Optional[Any]:
        """Request the main rates endpoint with its configured method, headers and body"""
        return await self._request(
            self.config.rates_url,
            name=f"{self.exchange_name} Rates",
            method=self.config.method,
            headers=self.config.headers,
            body=self.config.body
        )

    async def _fetch_info_endpoint(self) -> Optional[Any]:
        """Request the companion metadata endpoint, if any"""
        if not self.config.info_url:
            return None
        return await self._request(
            self.config.info_url,
            name=f"{self.exchange_name} Info",
            headers=self.config.headers
        )

    async def _fetch_with_info(self) -> Optional[SourcePayload]:
        """Fetch rates and companion metadata concurrently"""
        rates, info = await asyncio.gather(
            self._fetch_rates_endpoint(),
            self._fetch_info_endpoint(),
            return_exceptions=True
        )
        if isinstance(rates, BaseException):
            raise rates
        if isinstance(info, asyncio.CancelledError):
            raise info
        if isinstance(info, Exception):
            self.logger.error(f"{self.exchange_name} info request failed: {info}")
            info = None
        if rates is None:
            return None
        if info is None and self.config.info_url:
            self.logger.warning(
                f"{self.exchange_name} settlement intervals unavailable, "
                f"defaulting to {self.default_interval}h"
            )
        return SourcePayload(rates=rates, info=info)

    @staticmethod
    def _expect_list(value: Any, what: str) -> list:
        """Return value if it is a list, raise ValueError otherwise"""
        if not isinstance(value, list):
            raise ValueError(f"{what} is not a list")
        return value

    def strip_symbol(self, instrument: str) -> str:
        """Canonical base symbol of an instrument id (ex: BTCUSDT -> BTC)"""
        instrument = instrument.upper()
        if self.quote_suffix and instrument.endswith(self.quote_suffix):
            instrument = instrument[:-len(self.quote_suffix)]
        return instrument

    def make_rate(self,
                  instrument: str,
                  rate: Decimal,
                  interval: Optional[float] = None,
                  next_funding_time: Optional[datetime] = None,
                  funding_time: Optional[datetime] = None) -> FundingRate:
        """Build a FundingRate for this exchange"""
        return FundingRate(
            symbol=self.strip_symbol(instrument),
            exchange=self.exchange_name,
            current_rate=rate,
            settlement_interval=interval if interval else self.default_interval,
            next_funding_time=next_funding_time,
            funding_time=funding_time
        )

    def __str__(self):
        return f"{self.__class__.__name__}({self._exchange_key})"

    def __repr__(self):
        return self.__str__()
