"""
Pytest configuration and shared fixtures.

No test touches the network: connectors are fed by FakeHttpClient, which
routes (url, instId) pairs to canned JSON payloads.
"""

import os
import sys
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

# Add project root to sys.path
project_root = Path(__file__).resolve().parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from funding_scanner.models.config import ScannerConfig
from funding_scanner.models.funding_rate import FundingRate


MISSING = object()


class FakeHttpClient:
    """
    Stand-in for HttpClient.

    Routes map a URL (or (url, instId) for OKX per-instrument calls) to a
    payload, to None (transport failure) or to an exception to raise.
    Unrouted URLs behave like a transport failure.
    """

    def __init__(self, routes: Optional[Dict[Union[str, Tuple[str, str]], Any]] = None):
        self.routes = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def request_json(self, source, url, method="GET", headers=None,
                           body=None, params=None, timeout=30.0):
        self.calls.append({
            "source": source, "url": url, "method": method, "headers": headers,
            "body": body, "params": params, "timeout": timeout,
        })

        key: Union[str, Tuple[str, str]] = url
        if params and "instId" in params:
            key = (url, params["instId"])

        response = self.routes.get(key, MISSING)
        if response is MISSING or response is None:
            return None
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response()
        return response

    def calls_to(self, url: str) -> List[Dict[str, Any]]:
        return [call for call in self.calls if call["url"] == url]

    async def close(self):
        self.closed = True


@pytest.fixture
def config() -> ScannerConfig:
    """Default configuration, independent of the environment"""
    return ScannerConfig()


@pytest.fixture
def fake_http() -> FakeHttpClient:
    return FakeHttpClient()


@pytest.fixture
def make_rate() -> Callable[..., FundingRate]:
    """Build a FundingRate from plain values (rate in percent)"""
    def _make_rate(symbol: str, exchange: str, rate: Union[str, Decimal],
                   interval: float = 8) -> FundingRate:
        return FundingRate(
            symbol=symbol,
            exchange=exchange,
            current_rate=Decimal(str(rate)),
            settlement_interval=interval
        )
    return _make_rate


@pytest.fixture(autouse=True)
def clean_scanner_env(monkeypatch):
    """Keep FUNDING_SCANNER_* variables of the host out of the tests"""
    for key in list(os.environ):
        if key.startswith("FUNDING_SCANNER_"):
            monkeypatch.delenv(key, raising=False)
