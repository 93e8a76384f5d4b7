"""
Exchange connector tests: per-exchange normalization rules, degradation
on failures and the OKX two-step batched fetch.
"""

from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from conftest import FakeHttpClient
from funding_scanner.connectors import (
    BinanceConnector, BybitConnector, BitgetConnector, ConnectorManager,
    GateConnector, HyperliquidConnector, OKXConnector, SourcePayload
)
from funding_scanner.connectors import okx_connector
from funding_scanner.models.config import ScannerConfig


def connector_for(config, key, http):
    return ConnectorManager.CONNECTOR_CLASSES[key](key, config.get_exchange_config(key), http)


def by_symbol(rates):
    return {rate.symbol: rate for rate in rates}


# =============================================================================
# BINANCE
# =============================================================================

BINANCE_PREMIUM_INDEX = [
    {"symbol": "BTCUSDT", "lastFundingRate": "0.00010000", "nextFundingTime": 1704096000000},
    {"symbol": "ETHUSDT", "lastFundingRate": "-0.00005000", "nextFundingTime": 1704081600000},
    {"symbol": "BTCUSDC", "lastFundingRate": "0.00010000"},
    {"symbol": "DOGEUSDT", "lastFundingRate": "not-a-number"},
]

BINANCE_FUNDING_INFO = [
    {"symbol": "ETHUSDT", "fundingIntervalHours": 4},
]


class TestBinance:

    @pytest.fixture
    def connector(self, config, fake_http):
        return connector_for(config, "binance", fake_http)

    def test_normalize(self, connector):
        rates = connector.normalize(SourcePayload(BINANCE_PREMIUM_INDEX, BINANCE_FUNDING_INFO))

        assert [rate.symbol for rate in rates] == ["BTC", "ETH"]
        btc, eth = rates
        assert btc.exchange == "Binance"
        assert btc.current_rate == Decimal("0.0100")
        assert str(btc.current_rate) == "0.0100"
        assert btc.settlement_interval == 8
        assert not btc.is_special_interval
        assert btc.next_funding_time == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert eth.current_rate == Decimal("-0.0050")
        assert eth.settlement_interval == 4
        assert eth.is_special_interval

    def test_missing_info_defaults_to_8h(self, connector):
        rates = connector.normalize(SourcePayload(BINANCE_PREMIUM_INDEX, None))
        assert all(rate.settlement_interval == 8 for rate in rates)

    @pytest.mark.asyncio
    async def test_fetch_rates(self, config):
        http = FakeHttpClient({
            config.exchanges.binance.rates_url: BINANCE_PREMIUM_INDEX,
            config.exchanges.binance.info_url: BINANCE_FUNDING_INFO,
        })

        rates = await connector_for(config, "binance", http).fetch_rates()

        assert len(rates) == 2
        assert all(call["timeout"] == 30 for call in http.calls)

    @pytest.mark.asyncio
    async def test_info_failure_still_returns_rates(self, config):
        http = FakeHttpClient({config.exchanges.binance.rates_url: BINANCE_PREMIUM_INDEX})

        rates = await connector_for(config, "binance", http).fetch_rates()

        assert by_symbol(rates)["ETH"].settlement_interval == 8

    @pytest.mark.asyncio
    async def test_raising_info_request_still_returns_rates(self, config):
        http = FakeHttpClient({
            config.exchanges.binance.rates_url: BINANCE_PREMIUM_INDEX,
            config.exchanges.binance.info_url: UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"),
        })

        rates = await connector_for(config, "binance", http).fetch_rates()

        assert sorted(by_symbol(rates)) == ["BTC", "ETH"]
        assert all(rate.settlement_interval == 8 for rate in rates)

    @pytest.mark.asyncio
    async def test_transport_failure_is_none(self, config, fake_http):
        assert await connector_for(config, "binance", fake_http).fetch_rates() is None

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_empty(self, config):
        http = FakeHttpClient({config.exchanges.binance.rates_url: {"code": -1121, "msg": "Invalid"}})
        assert await connector_for(config, "binance", http).fetch_rates() == []


# =============================================================================
# BYBIT
# =============================================================================

BYBIT_TICKERS = {
    "retCode": 0,
    "result": {"category": "linear", "list": [
        {"symbol": "BTCUSDT", "fundingRate": "0.0001", "nextFundingTime": "1704096000000"},
        {"symbol": "ETHUSDT", "fundingRate": "-0.00005", "nextFundingTime": "1704081600000"},
        {"symbol": "BTCPERP", "fundingRate": "0.0001"},
        {"symbol": "SOLUSDT", "fundingRate": ""},
    ]}
}

BYBIT_INSTRUMENTS = {
    "retCode": 0,
    "result": {"list": [
        {"symbol": "BTCUSDT", "fundingInterval": 480},
        {"symbol": "ETHUSDT", "fundingInterval": 240},
    ]}
}


class TestBybit:

    @pytest.fixture
    def connector(self, config, fake_http):
        return connector_for(config, "bybit", fake_http)

    def test_normalize(self, connector):
        rates = by_symbol(connector.normalize(SourcePayload(BYBIT_TICKERS, BYBIT_INSTRUMENTS)))

        assert set(rates) == {"BTC", "ETH"}
        assert rates["BTC"].current_rate == Decimal("0.0100")
        assert rates["BTC"].settlement_interval == 8
        assert rates["ETH"].current_rate == Decimal("-0.0050")
        assert rates["ETH"].settlement_interval == 4
        assert rates["ETH"].exchange == "Bybit"

    def test_unknown_symbol_interval_defaults_to_8h(self, connector):
        rates = connector.normalize(SourcePayload(BYBIT_TICKERS, {"result": {"list": []}}))
        assert all(rate.settlement_interval == 8 for rate in rates)

    def test_missing_interval_field_is_480_minutes(self, connector):
        info = {"result": {"list": [{"symbol": "ETHUSDT"}]}}
        rates = by_symbol(connector.normalize(SourcePayload(BYBIT_TICKERS, info)))
        assert rates["ETH"].settlement_interval == 8

    def test_missing_result_list_raises(self, connector):
        with pytest.raises(ValueError):
            connector.normalize(SourcePayload({"retCode": 10001}, None))

    @pytest.mark.asyncio
    async def test_missing_result_list_is_empty(self, config):
        http = FakeHttpClient({config.exchanges.bybit.rates_url: {"retCode": 10001}})
        assert await connector_for(config, "bybit", http).fetch_rates() == []


# =============================================================================
# BITGET
# =============================================================================

BITGET_TICKERS = {
    "code": "00000",
    "data": [
        {"symbol": "BTCUSDT", "fundingRate": "0.0001"},
        {"symbol": "ETHUSDT", "fundingRate": "-0.0003"},
        {"symbol": "XRPUSDT"},
    ]
}

BITGET_CONTRACTS = {
    "code": "00000",
    "data": [{"symbol": "ETHUSDT", "fundInterval": "4"}]
}


class TestBitget:

    def test_normalize(self, config, fake_http):
        connector = connector_for(config, "bitget", fake_http)

        rates = by_symbol(connector.normalize(SourcePayload(BITGET_TICKERS, BITGET_CONTRACTS)))

        assert set(rates) == {"BTC", "ETH"}
        assert rates["BTC"].settlement_interval == 8
        assert rates["ETH"].settlement_interval == 4
        assert rates["ETH"].current_rate == Decimal("-0.0300")

    @pytest.mark.asyncio
    async def test_sends_configured_headers(self, config):
        http = FakeHttpClient({
            config.exchanges.bitget.rates_url: BITGET_TICKERS,
            config.exchanges.bitget.info_url: BITGET_CONTRACTS,
        })

        rates = await connector_for(config, "bitget", http).fetch_rates()

        assert len(rates) == 2
        call = http.calls_to(config.exchanges.bitget.rates_url)[0]
        assert call["headers"]["locale"] == "zh-CN"
        assert call["method"] == "GET"


# =============================================================================
# OKX
# =============================================================================

OKX_FUNDING_URL = ScannerConfig().exchanges.okx.funding_rate_url


def okx_listing(inst_ids):
    return {"code": "0", "data": [{"instId": inst_id, "markPx": "1"} for inst_id in inst_ids]}


def okx_funding(inst_id, rate="0.0001", funding_time=1704067200000, interval_hours=8):
    return {"code": "0", "data": [{
        "instId": inst_id,
        "fundingRate": rate,
        "fundingTime": str(funding_time),
        "nextFundingTime": str(funding_time + interval_hours * 3_600_000),
    }]}


class TestOKX:

    @pytest.fixture
    def sleep(self, monkeypatch):
        sleep = AsyncMock()
        monkeypatch.setattr(okx_connector.asyncio, "sleep", sleep)
        return sleep

    def make_http(self, config, inst_ids, failing=()):
        routes = {config.exchanges.okx.rates_url: okx_listing(inst_ids)}
        for inst_id in inst_ids:
            if inst_id not in failing:
                routes[(OKX_FUNDING_URL, inst_id)] = okx_funding(inst_id)
        return FakeHttpClient(routes)

    def test_list_instruments_keeps_usdt_swaps(self, config, fake_http):
        connector = connector_for(config, "okx", fake_http)
        listing = okx_listing(["BTC-USDT-SWAP", "BTC-USD-SWAP", "ETH-USDT-SWAP", "BTC-USDT-240329"])

        assert connector.list_instruments(listing) == ["BTC-USDT-SWAP", "ETH-USDT-SWAP"]

    def test_normalize(self, config, fake_http):
        connector = connector_for(config, "okx", fake_http)
        responses = [
            okx_funding("BTC-USDT-SWAP", "0.0001"),
            okx_funding("ETH-USDT-SWAP", "-0.00008", interval_hours=4),
            okx_funding("SOL-USDT-SWAP", "0"),
            okx_funding("XRP-USDT-SWAP", "NaN"),
            okx_funding("ADA-USDT-SWAP", ""),
            {"code": "51001", "data": []},
        ]

        rates = connector.normalize(responses)

        assert [rate.symbol for rate in rates] == ["BTC", "ETH"]
        btc, eth = rates
        assert btc.exchange == "OKX"
        assert btc.current_rate == Decimal("0.0100")
        assert btc.settlement_interval == 8
        assert btc.funding_time == datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)
        assert btc.next_funding_time == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert eth.current_rate == Decimal("-0.0080")
        assert eth.settlement_interval == 4
        assert eth.is_special_interval

    @pytest.mark.asyncio
    async def test_batches_and_pacing(self, config, sleep):
        inst_ids = [f"C{i}-USDT-SWAP" for i in range(120)]
        http = self.make_http(config, inst_ids)

        rates = await connector_for(config, "okx", http).fetch_rates()

        assert len(rates) == 120
        per_instrument = http.calls_to(OKX_FUNDING_URL)
        assert len(per_instrument) == 120
        assert [call["params"]["instId"] for call in per_instrument] == inst_ids
        assert all(call["timeout"] == 10 for call in per_instrument)
        # 3 batches (50/50/20), paced between batches only
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.2)

    @pytest.mark.asyncio
    async def test_failed_full_batch_is_skipped(self, config, sleep):
        inst_ids = [f"C{i}-USDT-SWAP" for i in range(120)]
        http = self.make_http(config, inst_ids, failing=set(inst_ids[50:100]))

        rates = await connector_for(config, "okx", http).fetch_rates()

        assert len(rates) == 70
        symbols = {rate.symbol for rate in rates}
        assert "C49" in symbols and "C100" in symbols
        assert "C50" not in symbols

    @pytest.mark.asyncio
    async def test_failed_last_batch_is_skipped(self, config, sleep):
        inst_ids = [f"C{i}-USDT-SWAP" for i in range(120)]
        http = self.make_http(config, inst_ids, failing=set(inst_ids[100:]))

        rates = await connector_for(config, "okx", http).fetch_rates()

        assert len(rates) == 100

    @pytest.mark.asyncio
    async def test_raising_instrument_call_is_skipped(self, config, sleep):
        inst_ids = ["BTC-USDT-SWAP", "ETH-USDT-SWAP"]
        http = self.make_http(config, inst_ids)
        http.routes[(OKX_FUNDING_URL, "ETH-USDT-SWAP")] = RuntimeError("socket closed")

        rates = await connector_for(config, "okx", http).fetch_rates()

        assert [rate.symbol for rate in rates] == ["BTC"]

    @pytest.mark.asyncio
    async def test_custom_batch_size(self, sleep):
        config = ScannerConfig(**{"exchanges": {"okx": {
            "name": "OKX",
            "rates_url": "https://www.okx.com/api/v5/public/mark-price?instType=SWAP",
            "batch_size": 2,
            "batch_delay_seconds": 0.5,
        }}})
        inst_ids = [f"C{i}-USDT-SWAP" for i in range(5)]

        rates = await connector_for(config, "okx", self.make_http(config, inst_ids)).fetch_rates()

        assert len(rates) == 5
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    @pytest.mark.asyncio
    async def test_listing_failure_is_none(self, config, fake_http, sleep):
        assert await connector_for(config, "okx", fake_http).fetch_rates() is None
        assert fake_http.calls_to(OKX_FUNDING_URL) == []


# =============================================================================
# HYPERLIQUID
# =============================================================================

HYPERLIQUID_META_AND_CTXS = [
    {"universe": [{"name": "BTC", "szDecimals": 5}, {"name": "ETH", "szDecimals": 4}, {"name": "kPEPE"}]},
    [
        {"funding": "0.0000125", "openInterest": "100"},
        {"funding": "-0.00008", "openInterest": "50"},
        {"funding": "0.00002"},
    ],
]


class TestHyperliquid:

    def test_normalize(self, config, fake_http):
        connector = connector_for(config, "hyperliquid", fake_http)

        rates = connector.normalize(HYPERLIQUID_META_AND_CTXS)

        assert [rate.symbol for rate in rates] == ["BTC", "ETH", "KPEPE"]
        assert rates[0].current_rate == Decimal("0.0013")
        assert rates[1].current_rate == Decimal("-0.0080")
        assert all(rate.settlement_interval == 1 for rate in rates)
        assert all(rate.is_special_interval for rate in rates)
        assert all(rate.exchange == "HyperLiquid" for rate in rates)

    @pytest.mark.parametrize("payload", [
        {"universe": []},
        [{"universe": [{"name": "BTC"}]}],
        [{"universe": [{"name": "BTC"}, {"name": "ETH"}]}, [{"funding": "0.0001"}]],
        [{"nope": []}, []],
    ])
    def test_malformed_payload_is_empty(self, config, fake_http, payload):
        assert connector_for(config, "hyperliquid", fake_http).normalize(payload) == []

    @pytest.mark.asyncio
    async def test_posts_meta_request(self, config):
        url = config.exchanges.hyperliquid.rates_url
        http = FakeHttpClient({url: HYPERLIQUID_META_AND_CTXS})

        rates = await connector_for(config, "hyperliquid", http).fetch_rates()

        assert len(rates) == 3
        call = http.calls[0]
        assert call["method"] == "POST"
        assert call["body"] == {"type": "metaAndAssetCtxs"}


# =============================================================================
# GATE
# =============================================================================

GATE_CONTRACTS = [
    {"name": "BTC_USDT", "funding_rate": "0.0001", "funding_interval": 28800,
     "funding_next_apply": 1704096000},
    {"name": "ETH_USDT", "funding_rate": "-0.0002", "funding_interval": 14400},
    {"name": "SOL_USDT", "funding_rate": "0.0001"},
    {"name": "BTC_USD", "funding_rate": "0.0001", "funding_interval": 28800},
    {"name": "XRP_USDT", "funding_rate": ""},
]


class TestGate:

    def test_normalize(self, config, fake_http):
        connector = connector_for(config, "gate", fake_http)

        rates = by_symbol(connector.normalize(GATE_CONTRACTS))

        assert set(rates) == {"BTC", "ETH", "SOL"}
        assert rates["BTC"].settlement_interval == 8
        assert rates["BTC"].next_funding_time == datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        assert rates["ETH"].settlement_interval == 4
        assert rates["ETH"].current_rate == Decimal("-0.0200")
        assert rates["SOL"].settlement_interval == 8
        assert rates["SOL"].exchange == "Gate"

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_empty(self, config):
        http = FakeHttpClient({config.exchanges.gate.rates_url: {"label": "SERVER_ERROR"}})
        assert await connector_for(config, "gate", http).fetch_rates() == []


# =============================================================================
# SYMBOLS & MANAGER
# =============================================================================

class TestSymbols:

    @pytest.mark.parametrize("connector_class,instrument,symbol", [
        (BinanceConnector, "BTCUSDT", "BTC"),
        (BybitConnector, "1000PEPEUSDT", "1000PEPE"),
        (BitgetConnector, "USDTUSDT", "USDT"),
        (OKXConnector, "BTC-USDT-SWAP", "BTC"),
        (HyperliquidConnector, "btc", "BTC"),
        (GateConnector, "ETH_USDT", "ETH"),
    ])
    def test_strip_symbol(self, config, fake_http, connector_class, instrument, symbol):
        connector = connector_class("x", config.exchanges.binance, fake_http)
        assert connector.strip_symbol(instrument) == symbol


class TestConnectorManager:

    def test_builds_enabled_connectors_in_order(self):
        config = ScannerConfig(exchanges={
            "binance": {"name": "Binance", "rates_url": "http://b"},
            "gate": {"name": "Gate", "rates_url": "http://g", "enabled": False},
        })

        manager = ConnectorManager(config, FakeHttpClient())

        assert list(manager.get_all_connectors()) == ["binance", "bybit", "bitget", "okx", "hyperliquid"]
        assert isinstance(manager.get_connector("okx"), OKXConnector)
        assert manager.get_connector("gate") is None

    @pytest.mark.asyncio
    async def test_fetch_all_isolates_failures(self, config):
        http = FakeHttpClient({
            config.exchanges.binance.rates_url: RuntimeError("boom"),
            config.exchanges.gate.rates_url: GATE_CONTRACTS,
        })
        manager = ConnectorManager(config, http)

        results = await manager.fetch_all()

        assert len(results) == 6
        binance, bybit, bitget, okx, hyperliquid, gate = results
        assert binance is None
        assert bybit is None and bitget is None and okx is None and hyperliquid is None
        assert len(gate) == 3

    @pytest.mark.asyncio
    async def test_close_releases_http_client(self, config, fake_http):
        await ConnectorManager(config, fake_http).close()
        assert fake_http.closed
