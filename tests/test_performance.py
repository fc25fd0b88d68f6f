"""Tests for the XIRR solver and MWR/TWR performance metrics."""

from __future__ import annotations

from datetime import date

import pytest

from fakes import FakeInstruments, FakePrices, FakeTransactions, make_tx, stock
from portfolio_core.errors import InvalidPeriodError
from portfolio_core.models.performance import PeriodType
from portfolio_core.performance import PerformanceEngine
from portfolio_core.performance.xirr import CashFlow, solve_xirr, xnpv
from portfolio_core.valuation import SnapshotCache, ValuationEngine

START = date(2025, 1, 1)
END = date(2026, 1, 1)


class TestXirr:
    def test_ten_percent_over_one_year(self):
        rate = solve_xirr([CashFlow(START, -100), CashFlow(END, 110)])
        assert rate == pytest.approx(0.1, abs=1e-6)

    def test_negative_return(self):
        rate = solve_xirr([CashFlow(START, -100), CashFlow(END, 80)])
        assert rate == pytest.approx(-0.2, abs=1e-6)

    def test_root_zeroes_xnpv(self):
        flows = [
            CashFlow(START, -1000),
            CashFlow(date(2025, 4, 1), -500),
            CashFlow(date(2025, 9, 1), 200),
            CashFlow(END, 1500),
        ]
        rate = solve_xirr(flows)
        assert rate is not None
        assert xnpv(rate, flows) == pytest.approx(0, abs=1e-6)

    def test_undefined_without_both_signs(self):
        assert solve_xirr([CashFlow(START, 100), CashFlow(END, 110)]) is None
        assert solve_xirr([CashFlow(START, -100), CashFlow(END, -1)]) is None
        assert solve_xirr([]) is None

    def test_zero_flows_ignored_for_sign_check(self):
        assert solve_xirr([CashFlow(START, 0), CashFlow(START, -100), CashFlow(END, 110)]) == pytest.approx(
            0.1, abs=1e-6
        )

    def test_xnpv_at_zero_rate_is_sum(self):
        flows = [CashFlow(START, -100), CashFlow(END, 110)]
        assert xnpv(0.0, flows) == pytest.approx(10)


def _engine(transactions, closes, cache=None) -> PerformanceEngine:
    source = FakeTransactions(transactions)
    valuation = ValuationEngine(
        source,
        FakePrices(closes),
        FakeInstruments([stock("inst-x", "XYZ")]),
        cache=cache,
    )
    return PerformanceEngine(valuation, source)


def _one_year_ledger():
    return [
        make_tx("DEPOSIT", START, amount=100),
        make_tx("BUY", START, instrument_id="inst-x", quantity=1, price=100),
    ]


ONE_YEAR_CLOSES = {"inst-x": {START: 100.0, END: 110.0}}


class TestResolvePeriod:
    def test_since_inception_starts_at_first_trade(self):
        engine = _engine(_one_year_ledger(), ONE_YEAR_CLOSES)
        bounds = engine.resolve_period("since_inception", END)
        assert (bounds.start_date, bounds.end_date) == (START, END)

    def test_since_inception_empty_ledger_collapses_to_as_of(self):
        bounds = _engine([], {}).resolve_period(PeriodType.SINCE_INCEPTION, END)
        assert bounds.start_date == END

    def test_ytd(self):
        bounds = _engine([], {}).resolve_period("ytd", date(2025, 7, 4))
        assert bounds.start_date == date(2025, 1, 1)
        assert bounds.end_date == date(2025, 7, 4)

    def test_custom_requires_both_bounds(self):
        with pytest.raises(InvalidPeriodError):
            _engine([], {}).resolve_period("custom", END, from_date=START)

    def test_custom_rejects_inverted_range(self):
        with pytest.raises(InvalidPeriodError):
            _engine([], {}).resolve_period("custom", END, from_date=END, to_date=START)

    def test_custom_rejects_end_after_as_of(self):
        with pytest.raises(InvalidPeriodError):
            _engine([], {}).resolve_period("custom", START, from_date=START, to_date=END)

    def test_unknown_period(self):
        with pytest.raises(InvalidPeriodError, match="Unknown period"):
            _engine([], {}).resolve_period("mtd", END)


class TestPerformanceMetrics:
    def test_mwr_and_twr_ten_percent(self):
        metrics = _engine(_one_year_ledger(), ONE_YEAR_CLOSES).get_metrics(as_of=END)

        assert metrics.start_value == 0
        assert metrics.end_value == pytest.approx(110)
        assert metrics.mwr == pytest.approx(0.1, abs=1e-6)
        assert metrics.twr == pytest.approx(0.1, abs=1e-9)

    def test_twr_chains_daily_returns_around_flows(self):
        ledger = _one_year_ledger() + [make_tx("DEPOSIT", date(2025, 7, 1), amount=1000)]
        metrics = _engine(ledger, ONE_YEAR_CLOSES).get_metrics(as_of=END)
        # the deposit day nets to zero; only the final mark moves 1100 -> 1110
        assert metrics.twr == pytest.approx(10 / 1100, abs=1e-9)
        assert metrics.end_value == pytest.approx(1110)

    def test_external_flows_net_per_day(self):
        ledger = [
            make_tx("DEPOSIT", START, amount=100),
            make_tx("WITHDRAWAL", START, amount=30),
            make_tx("DIVIDEND", START, amount=5),
            make_tx("DEPOSIT", END, amount=10),
        ]
        flows = _engine(ledger, {}).external_flows(None, START, END)
        assert flows == {START: pytest.approx(70), END: pytest.approx(10)}

    def test_cash_only_portfolio_has_zero_twr(self):
        ledger = [make_tx("DEPOSIT", START, amount=100)]
        metrics = _engine(ledger, {}).get_metrics(as_of=date(2025, 1, 31))
        assert metrics.twr == pytest.approx(0)
        assert metrics.mwr == pytest.approx(0, abs=1e-6)

    def test_empty_ledger(self):
        metrics = _engine([], {}).get_metrics(as_of=END)
        assert metrics.mwr is None
        assert metrics.twr == 0

    def test_shared_cache_across_calls(self):
        cache = SnapshotCache()
        engine = _engine(_one_year_ledger(), ONE_YEAR_CLOSES, cache=cache)
        engine.get_metrics(as_of=END)
        misses = cache.misses
        engine.get_metrics(as_of=END)
        assert cache.misses == misses
        assert cache.hits > 0
