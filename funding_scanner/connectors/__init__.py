from .http_client import HttpClient
from .base_connector import BaseConnector, SourcePayload
from .binance_connector import BinanceConnector
from .bybit_connector import BybitConnector
from .bitget_connector import BitgetConnector
from .okx_connector import OKXConnector
from .hyperliquid_connector import HyperliquidConnector
from .gate_connector import GateConnector
from .connector_manager import ConnectorManager

__all__ = [
    "HttpClient", "BaseConnector", "SourcePayload",
    "BinanceConnector", "BybitConnector", "BitgetConnector",
    "OKXConnector", "HyperliquidConnector", "GateConnector",
    "ConnectorManager"
]
