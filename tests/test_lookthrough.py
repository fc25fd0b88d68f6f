"""Tests for ETF look-through."""

from __future__ import annotations

from datetime import date

import pytest

from fakes import FakeConstituents
from portfolio_core.exposure import UNMAPPED_SYMBOL, apply_look_through, normalize_weights
from portfolio_core.models.market import ConstituentSet
from portfolio_core.models.valuation import AssetKind, Holding, WarningCode

AS_OF = date(2025, 3, 31)


def _holding(symbol, kind, mv, account_id="acct-1", instrument_id=None, cost=None, quantity=1.0):
    cost = mv if cost is None else cost
    return Holding(
        account_id=account_id,
        instrument_id=instrument_id if instrument_id is not None else f"inst-{symbol.lower()}",
        symbol=symbol,
        kind=kind,
        quantity=quantity,
        market_value=mv,
        cost_basis=cost,
        unrealized_pnl=mv - cost,
    )


def _etf_set(weights, as_of=AS_OF, etf_id="inst-etf1"):
    return ConstituentSet(etf_instrument_id=etf_id, as_of_date=as_of, weights=weights)


def _by_symbol(result):
    return {h.symbol: h for h in result.holdings}


class TestNormalizeWeights:
    def test_fractions_kept(self):
        assert normalize_weights({"aapl": 0.5, "MSFT": 0.4}) == {"AAPL": 0.5, "MSFT": 0.4}

    def test_percentages_scaled(self):
        assert normalize_weights({"AAPL": 60, "MSFT": 40}) == {"AAPL": pytest.approx(0.6), "MSFT": pytest.approx(0.4)}

    def test_non_positive_dropped(self):
        assert normalize_weights({"AAPL": 0.5, "BAD": 0, "NEG": -0.1}) == {"AAPL": 0.5}


class TestApplyLookThrough:
    def test_partial_coverage_with_direct_overlap(self):
        holdings = [
            _holding("AAPL", AssetKind.STOCK, 50, cost=40),
            _holding("ETF1", AssetKind.ETF, 100, cost=80, quantity=2),
        ]
        result = apply_look_through(holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 0.5, "MSFT": 0.4})]))
        rows = _by_symbol(result)

        assert set(rows) == {"AAPL", "MSFT", UNMAPPED_SYMBOL}
        assert rows["AAPL"].market_value == pytest.approx(100)
        assert rows["AAPL"].instrument_id == "inst-aapl"
        assert rows["AAPL"].quantity == pytest.approx(1)
        assert rows["AAPL"].cost_basis == pytest.approx(80)
        assert rows["MSFT"].market_value == pytest.approx(40)
        assert rows["MSFT"].instrument_id is None
        assert rows[UNMAPPED_SYMBOL].market_value == pytest.approx(10)
        assert rows[UNMAPPED_SYMBOL].kind is AssetKind.CUSTOM
        assert result.meta.coverage_pct == pytest.approx(90)
        assert result.meta.uncovered_etf_value == pytest.approx(10)
        assert result.warnings == []

    def test_value_conserved_and_weights_sum_to_100(self):
        holdings = [
            _holding("AAPL", AssetKind.STOCK, 50),
            _holding("ETF1", AssetKind.ETF, 100),
        ]
        result = apply_look_through(holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 0.5, "MSFT": 0.4})]))
        assert sum(h.market_value for h in result.holdings) == pytest.approx(150)
        assert sum(h.portfolio_weight_pct for h in result.holdings) == pytest.approx(100)
        assert [h.symbol for h in result.holdings] == ["AAPL", "MSFT", UNMAPPED_SYMBOL]

    def test_missing_dataset_routes_everything_to_unmapped(self):
        holdings = [_holding("ETF1", AssetKind.ETF, 100)]
        result = apply_look_through(holdings, AS_OF, FakeConstituents())

        [row] = result.holdings
        assert row.symbol == UNMAPPED_SYMBOL
        assert row.market_value == pytest.approx(100)
        assert result.meta.coverage_pct == 0
        [warning] = result.warnings
        assert warning.code is WarningCode.ETF_LOOKTHROUGH_UNAVAILABLE
        assert warning.instrument_id == "inst-etf1"
        assert result.meta.staleness[0].as_of_date is None

    def test_stale_dataset_warns(self):
        holdings = [_holding("ETF1", AssetKind.ETF, 100)]
        older = date(2025, 3, 1)
        result = apply_look_through(holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 1.0}, as_of=older)]))

        assert [w.code for w in result.warnings] == [WarningCode.ETF_LOOKTHROUGH_STALE]
        assert result.meta.coverage_pct == pytest.approx(100)
        assert result.meta.staleness[0].as_of_date == older
        assert UNMAPPED_SYMBOL not in _by_symbol(result)

    def test_future_dataset_not_used(self):
        holdings = [_holding("ETF1", AssetKind.ETF, 100)]
        result = apply_look_through(
            holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 1.0}, as_of=date(2025, 4, 1))])
        )
        assert result.meta.coverage_pct == 0

    def test_percentage_weights_fully_cover(self):
        holdings = [_holding("ETF1", AssetKind.ETF, 200)]
        result = apply_look_through(holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 60, "MSFT": 40})]))
        rows = _by_symbol(result)
        assert rows["AAPL"].market_value == pytest.approx(120)
        assert rows["MSFT"].market_value == pytest.approx(80)
        assert result.meta.coverage_pct == pytest.approx(100)

    def test_no_etfs_full_coverage(self):
        holdings = [_holding("AAPL", AssetKind.STOCK, 50)]
        result = apply_look_through(holdings, AS_OF, FakeConstituents())
        assert result.meta.coverage_pct == 100
        assert result.meta.total_etf_value == 0
        assert result.meta.staleness == []

    def test_unmapped_bucket_per_account(self):
        holdings = [
            _holding("ETF1", AssetKind.ETF, 100, account_id="a"),
            _holding("ETF1", AssetKind.ETF, 50, account_id="b"),
        ]
        result = apply_look_through(holdings, AS_OF, FakeConstituents([_etf_set({"AAPL": 0.8})]))
        unmapped = {h.account_id: h.market_value for h in result.holdings if h.symbol == UNMAPPED_SYMBOL}
        assert unmapped == {"a": pytest.approx(20), "b": pytest.approx(10)}
        assert len(result.meta.staleness) == 1

    def test_two_etfs_share_one_unmapped_row(self):
        holdings = [
            _holding("ETF1", AssetKind.ETF, 100),
            _holding("ETF2", AssetKind.ETF, 100),
        ]
        result = apply_look_through(
            holdings,
            AS_OF,
            FakeConstituents([_etf_set({"AAPL": 0.5}), _etf_set({"AAPL": 0.9}, etf_id="inst-etf2")]),
        )
        rows = _by_symbol(result)
        assert rows["AAPL"].market_value == pytest.approx(140)
        assert rows[UNMAPPED_SYMBOL].market_value == pytest.approx(60)
        assert result.meta.coverage_pct == pytest.approx(70)

    def test_cash_rows_pass_through(self):
        cash = Holding(
            account_id="acct-1", symbol="CASH", kind=AssetKind.CASH, quantity=1, market_value=25, cost_basis=25
        )
        result = apply_look_through([cash], AS_OF, FakeConstituents())
        assert result.holdings[0].symbol == "CASH"
        assert result.holdings[0].portfolio_weight_pct == pytest.approx(100)
