"""
Data model tests: funding rate validity, wire representations.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from funding_scanner.models.funding_rate import FundingRate
from funding_scanner.models.opportunity import ArbitrageOpportunity, OpportunityType
from funding_scanner.models.snapshot import FundingSnapshot, error_payload


class TestFundingRate:
    """FundingRate tests"""

    @pytest.mark.parametrize("interval,special", [(8, False), (8.0, False), (1, True), (4, True)])
    def test_special_interval(self, make_rate, interval, special):
        assert make_rate("BTC", "Binance", "0.01", interval).is_special_interval is special

    def test_valid_rate(self, make_rate):
        assert make_rate("BTC", "Binance", "-0.0050").is_valid

    @pytest.mark.parametrize("rate", ["0", "0.0000", "NaN", "Infinity", "-Infinity"])
    def test_rates_without_signal_are_invalid(self, make_rate, rate):
        assert not make_rate("BTC", "Binance", rate).is_valid

    def test_missing_fields_are_invalid(self, make_rate):
        assert not make_rate("", "Binance", "0.01").is_valid
        assert not make_rate("BTC", "", "0.01").is_valid

    def test_non_decimal_rate_is_invalid(self):
        rate = FundingRate(symbol="BTC", exchange="Binance", current_rate="0.01")
        assert not rate.is_valid

    def test_annual_rate(self, make_rate):
        assert make_rate("BTC", "Binance", "0.0100", 8).annual_rate == Decimal("10.95")
        assert make_rate("BTC", "HyperLiquid", "0.0100", 1).annual_rate == Decimal("87.6")

    def test_to_dict(self):
        rate = FundingRate(
            symbol="BTC",
            exchange="Bybit",
            current_rate=Decimal("0.0100"),
            settlement_interval=4.0,
            next_funding_time=datetime(2024, 1, 1, 8, 0, tzinfo=timezone.utc)
        )

        data = rate.to_dict()

        assert data == {
            "symbol": "BTC",
            "exchange": "Bybit",
            "currentRate": "0.0100",
            "isSpecialInterval": True,
            "settlementInterval": 4,
            "nextFundingTime": "2024-01-01T08:00:00.000Z",
        }

    def test_to_dict_keeps_fractional_interval(self, make_rate):
        assert make_rate("BTC", "Bybit", "0.01", 0.5).to_dict()["settlementInterval"] == 0.5


class TestArbitrageOpportunity:
    """ArbitrageOpportunity tests"""

    def test_same_period_to_dict(self):
        opp = ArbitrageOpportunity(
            symbol="BTC",
            type=OpportunityType.SAME_PERIOD,
            long_exchange="Bybit",
            short_exchange="Binance",
            long_rate=Decimal("-0.0050"),
            short_rate=Decimal("0.0100"),
            rate_diff=Decimal("0.0150"),
            annual_yield=Decimal("16.425"),
            settlement_period=8.0
        )

        data = opp.to_dict()

        assert data["type"] == "same_period"
        assert data["longExchange"] == "Bybit"
        assert data["shortExchange"] == "Binance"
        assert data["rateDiff"] == pytest.approx(0.015)
        assert data["annualYield"] == pytest.approx(16.425)
        assert data["settlementPeriod"] == 8
        assert "expectedProfit" not in data
        assert opp.pair_name == "Bybit_Binance"

    def test_different_period_to_dict(self):
        opp = ArbitrageOpportunity(
            symbol="ETH",
            type=OpportunityType.DIFFERENT_PERIOD,
            long_exchange="HyperLiquid",
            short_exchange="OKX",
            long_rate=Decimal("-0.0080"),
            short_rate=Decimal("0.0020"),
            rate_diff=Decimal("0.0100"),
            annual_yield=Decimal("70.08"),
            settlement_period1=1,
            settlement_period2=8.0,
            expected_profit=Decimal("0.0080")
        )

        data = opp.to_dict()

        assert opp.is_different_period
        assert data["settlementPeriod1"] == 1
        assert data["settlementPeriod2"] == 8
        assert data["expectedProfit"] == pytest.approx(0.008)
        assert "settlementPeriod" not in data


class TestSnapshot:
    """FundingSnapshot tests"""

    def test_payload_shape(self, make_rate):
        snapshot = FundingSnapshot(
            rates=(make_rate("BTC", "Binance", "0.0100"),),
            opportunities=(),
            fetched_at=datetime(2024, 5, 1, 12, 30, 15, 250000, tzinfo=timezone.utc),
            exchange_counts={"Binance": 1, "total": 1}
        )

        payload = snapshot.to_payload()

        assert payload["success"] is True
        assert payload["data"][0]["symbol"] == "BTC"
        assert payload["arbitrageOpportunities"] == []
        assert payload["lastUpdate"] == "2024-05-01T12:30:15.250Z"
        assert payload["debug"] == {"binanceCount": 1, "totalCount": 1}
        assert "error" not in payload

    def test_opportunities_of_type(self):
        opp = ArbitrageOpportunity(
            symbol="BTC", type=OpportunityType.SAME_PERIOD,
            long_exchange="A", short_exchange="B",
            long_rate=Decimal("0"), short_rate=Decimal("0.1"),
            rate_diff=Decimal("0.1"), annual_yield=Decimal("109.5"),
            settlement_period=8
        )
        snapshot = FundingSnapshot(rates=(), opportunities=(opp,))

        assert snapshot.opportunities_of_type(OpportunityType.SAME_PERIOD) == [opp]
        assert snapshot.opportunities_of_type(OpportunityType.DIFFERENT_PERIOD) == []

    def test_error_payload(self):
        payload = error_payload("boom")

        assert payload["success"] is False
        assert payload["data"] == []
        assert payload["arbitrageOpportunities"] == []
        assert payload["error"] == "boom"
        assert payload["lastUpdate"].endswith("Z")
