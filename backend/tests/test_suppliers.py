"""Tests for the supplier-financials adapter."""

import pytest

from conftest import FakeTransport, chart_payload, json_reply
from market_intel.services.catalog import SupplierSpec
from market_intel.services.errors import ErrorKind
from market_intel.services.records import FinancialHealth, InvestmentGrade
from market_intel.services.retry import HttpResponse
from market_intel.services.sources import SupplierSource
from market_intel.services.sources.suppliers import parse_statistics, series_performance


def spec(ticker: str) -> SupplierSpec:
    return SupplierSpec(ticker, f"{ticker} Corp", "Distribution", "SoCal", "Lumber", "Strong", 80)


def stats_payload(**overrides):
    key_stats = {"forwardPE": {"raw": 18.0}, "trailingPE": {"raw": 22.0}}
    financial = {
        "grossMargins": {"raw": 0.33},
        "operatingMargins": {"raw": 0.14},
        "profitMargins": {"raw": 0.25},
        "revenueGrowth": {"raw": 0.05},
        "returnOnEquity": {"raw": 0.45},
        "debtToEquity": {"raw": 80.0},
    }
    financial.update(overrides)
    return {"quoteSummary": {"result": [{"defaultKeyStatistics": key_stats, "financialData": financial}]}}


# 30 rising closes from 70 to 99
CLOSES = [70.0 + i for i in range(30)]


def make_source(make_executor, no_sleep, fixed_now, transport, suppliers=(spec("HD"),), batch_size=3):
    return SupplierSource(
        make_executor(transport),
        suppliers,
        batch_size=batch_size,
        batch_pause_seconds=1.0,
        sleep=no_sleep,
        now=fixed_now,
    )


class TestStatistics:

    def test_units_are_converted(self):
        stats = parse_statistics(stats_payload())
        assert stats["pe_ratio"] == 18.0
        assert stats["gross_margin"] == pytest.approx(33.0)
        assert stats["profit_margin"] == pytest.approx(25.0)
        assert stats["return_on_equity"] == pytest.approx(45.0)
        assert stats["debt_equity"] == pytest.approx(0.8)

    def test_trailing_pe_when_no_forward(self):
        payload = stats_payload()
        del payload["quoteSummary"]["result"][0]["defaultKeyStatistics"]["forwardPE"]
        assert parse_statistics(payload)["pe_ratio"] == 22.0

    def test_zero_and_missing_are_unknown(self):
        stats = parse_statistics(stats_payload(profitMargins={"raw": 0}, returnOnEquity={}))
        assert stats["profit_margin"] is None
        assert stats["return_on_equity"] is None

    def test_garbage_payload_gives_all_unknown(self):
        assert all(v is None for v in parse_statistics({"unexpected": True}).values())


class TestSeriesPerformance:

    def test_offsets(self):
        weekly, monthly, quarterly = series_performance(CLOSES, 99.0)
        assert weekly == pytest.approx((99.0 - 94.0) / 94.0 * 100)
        assert monthly == pytest.approx((99.0 - 78.0) / 78.0 * 100)
        assert quarterly == pytest.approx((99.0 - 70.0) / 70.0 * 100)

    def test_short_series_is_clamped(self):
        weekly, monthly, quarterly = series_performance([50.0, 55.0], 60.0)
        assert weekly == monthly == quarterly == pytest.approx(20.0)

    def test_empty_series(self):
        assert series_performance([], 10.0) == (0.0, 0.0, 0.0)


class TestSupplierSource:

    @pytest.mark.asyncio
    async def test_live_record(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "chart/HD": json_reply(chart_payload(99.0, 98.0, closes=CLOSES, market_cap=3.8e11)),
            "quoteSummary/HD": json_reply(stats_payload()),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        hd = result.records[0]
        assert not hd.is_fallback
        assert hd.market_cap == "$380.00B"
        assert hd.current_price == 99.0
        assert hd.quarterly_performance == pytest.approx(41.43, abs=0.01)
        # margin 25 -> 3, d/e 0.8 -> 2, roe 45 -> 3
        assert hd.financial_health == FinancialHealth.EXCELLENT
        # pe 18 -> 1, margin 25 -> 2, quarterly > 5 -> 2
        assert hd.investment_grade == InvestmentGrade.A
        assert hd.historical_prices[-1].value == 99.0
        assert len(hd.historical_prices) == 91

    @pytest.mark.asyncio
    async def test_ratio_call_failure_leaves_ratios_unknown(self, make_executor, no_sleep, fixed_now):
        """Secondary statistics failing entirely does not fail the supplier."""
        transport = FakeTransport({
            "chart/HD": json_reply(chart_payload(99.0, 98.0, closes=CLOSES)),
            "quoteSummary/HD": HttpResponse(status=500, body=""),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        hd = result.records[0]
        assert not hd.is_fallback
        assert result.errors == ()
        assert hd.current_price == 99.0
        assert hd.weekly_performance != 0.0
        for ratio in ("gross_margin", "operating_margin", "profit_margin", "revenue_growth",
                      "return_on_equity", "pe_ratio", "debt_equity"):
            assert getattr(hd, ratio) is None
        assert hd.financial_health == FinancialHealth.WEAK

    @pytest.mark.asyncio
    async def test_chart_failure_gives_fallback(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({"chart/HD": HttpResponse(status=500, body="")})
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        result = await source.fetch_all()

        hd = result.records[0]
        assert hd.is_fallback
        assert hd.market_cap == "N/A"
        assert hd.financial_health == FinancialHealth.UNKNOWN
        assert hd.investment_grade == InvestmentGrade.NOT_RATED
        assert hd.pe_ratio is None
        assert hd.historical_prices == ()
        assert hd.company == "HD Corp"
        assert result.errors[0].kind == ErrorKind.ROUTE_EXHAUSTED
        # No statistics request once the chart failed
        assert transport.calls_to("quoteSummary") == []

    @pytest.mark.asyncio
    async def test_price_from_last_close_when_meta_missing(self, make_executor, no_sleep, fixed_now):
        transport = FakeTransport({
            "chart/HD": json_reply(chart_payload(None, None, closes=[10.0, None, 12.0])),
            "quoteSummary/HD": json_reply(stats_payload()),
        })
        source = make_source(make_executor, no_sleep, fixed_now, transport)

        hd = (await source.fetch_all()).records[0]

        assert hd.current_price == 12.0
        assert hd.quarterly_performance == pytest.approx(20.0)

    @pytest.mark.asyncio
    async def test_batches_with_pause(self, make_executor, no_sleep, fixed_now):
        tickers = ["A1", "B2", "C3", "D4", "E5", "F6", "G7"]
        transport = FakeTransport({"": json_reply(chart_payload(10.0, 10.0, closes=[10.0, 10.0]))})
        source = make_source(
            make_executor, no_sleep, fixed_now, transport,
            suppliers=[spec(t) for t in tickers], batch_size=3,
        )

        result = await source.fetch_all()

        assert [r.ticker for r in result.records] == tickers
        # Three batches, two pauses between them
        assert no_sleep.await_count == 2
        no_sleep.assert_awaited_with(1.0)

    def test_batch_size_must_be_positive(self, make_executor):
        with pytest.raises(ValueError):
            SupplierSource(make_executor(FakeTransport()), batch_size=0)
