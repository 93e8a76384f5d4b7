"""
Connector manager for querying every enabled exchange concurrently.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Type

from .base_connector import BaseConnector
from .binance_connector import BinanceConnector
from .bybit_connector import BybitConnector
from .bitget_connector import BitgetConnector
from .okx_connector import OKXConnector
from .hyperliquid_connector import HyperliquidConnector
from .gate_connector import GateConnector
from .http_client import HttpClient
from funding_scanner.models.config import ScannerConfig
from funding_scanner.models.funding_rate import FundingRate


class ConnectorManager:
    """
    Owns one connector per enabled exchange, in the configured order.
    """

    # Available connector classes
    CONNECTOR_CLASSES: Dict[str, Type[BaseConnector]] = {
        'binance': BinanceConnector,
        'bybit': BybitConnector,
        'bitget': BitgetConnector,
        'okx': OKXConnector,
        'hyperliquid': HyperliquidConnector,
        'gate': GateConnector,
    }

    def __init__(self, config: ScannerConfig, http_client: HttpClient):
        self.logger = logging.getLogger(self.__class__.__name__)
        self.config = config
        self.http = http_client

        default_interval = config.arbitrage.default_settlement_interval
        self._connectors: Dict[str, BaseConnector] = {}

        for key, exchange_config in config.exchanges.items():
            if not exchange_config.enabled:
                self.logger.info(f"Exchange {key} disabled, skipping")
                continue
            connector_class = self.CONNECTOR_CLASSES[key]
            self._connectors[key] = connector_class(key, exchange_config, http_client, default_interval)

    def get_connector(self, exchange: str) -> Optional[BaseConnector]:
        """Get a specific connector"""
        return self._connectors.get(exchange)

    def get_all_connectors(self) -> Dict[str, BaseConnector]:
        """Get all active connectors"""
        return self._connectors.copy()

    async def fetch_all(self) -> List[Optional[List[FundingRate]]]:
        """
        Query every connector concurrently.

        Returns:
            One entry per connector in configured order: its rates, or
            None when that source failed
        """
        connectors = list(self._connectors.values())
        results = await asyncio.gather(
            *(connector.fetch_rates() for connector in connectors),
            return_exceptions=True
        )

        outcomes: List[Optional[List[FundingRate]]] = []
        for connector, result in zip(connectors, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                self.logger.error(f"Error fetching {connector.exchange_name} rates: {result}")
                outcomes.append(None)
            else:
                outcomes.append(result)

        return outcomes

    async def close(self):
        """Release the shared HTTP session"""
        await self.http.close()
