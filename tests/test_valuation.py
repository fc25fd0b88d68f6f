"""Tests for point-in-time valuation snapshots and the snapshot cache."""

from __future__ import annotations

import math
from datetime import date
from unittest.mock import patch

import pytest

from fakes import FakeInstruments, FakePrices, FakeTransactions, make_tx, stock
from portfolio_core.models.valuation import AssetKind, WarningCode
from portfolio_core.valuation import SnapshotCache, ValuationEngine
from portfolio_core.valuation.snapshot import CASH_SYMBOL

DEPOSIT_DAY = date(2025, 1, 2)
BUY_DAY = date(2025, 1, 3)
AS_OF = date(2025, 1, 10)


def _engine(transactions, closes=None, infos=None, cache=None) -> ValuationEngine:
    return ValuationEngine(
        FakeTransactions(transactions),
        FakePrices(closes or {}),
        FakeInstruments(infos if infos is not None else [stock("inst-aapl", "AAPL")]),
        cache=cache,
    )


def _aapl_ledger():
    return [
        make_tx("DEPOSIT", DEPOSIT_DAY, amount=50000),
        make_tx("BUY", BUY_DAY, instrument_id="inst-aapl", quantity=100, price=114),
    ]


AAPL_CLOSES = {"inst-aapl": {BUY_DAY: 114.0, AS_OF: 118.8}}


class TestSnapshot:
    def test_cash_and_position_totals(self):
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=AS_OF)

        assert snap.totals.cash_value == pytest.approx(38600)
        assert snap.totals.market_value == pytest.approx(11880)
        assert snap.totals.total_value == pytest.approx(50480)
        assert snap.totals.unrealized_pnl == pytest.approx(480)
        assert snap.warnings == []
        assert snap.is_complete

    def test_holdings_sorted_and_weighted(self):
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=AS_OF)

        assert [h.symbol for h in snap.holdings] == [CASH_SYMBOL, "AAPL"]
        cash, aapl = snap.holdings
        assert cash.kind is AssetKind.CASH
        assert cash.instrument_id is None
        assert cash.quantity == 1.0
        assert cash.cost_basis == pytest.approx(38600)
        assert aapl.portfolio_weight_pct == pytest.approx(11880 / 50480 * 100)
        assert sum(h.portfolio_weight_pct for h in snap.holdings) == pytest.approx(100)

    def test_stale_price_used_with_warning(self):
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=date(2025, 1, 9))

        assert snap.totals.market_value == pytest.approx(11400)
        [warning] = snap.warnings
        assert warning.code is WarningCode.STALE_PRICE_FALLBACK
        assert warning.symbol == "AAPL"
        assert warning.instrument_id == "inst-aapl"
        assert snap.is_complete

    def test_missing_price_values_at_zero(self):
        snap = _engine(_aapl_ledger(), {}).get_snapshot(as_of=AS_OF)

        aapl = next(h for h in snap.holdings if h.symbol == "AAPL")
        assert aapl.market_value == 0
        assert aapl.unrealized_pnl == pytest.approx(-11400)
        assert [w.code for w in snap.warnings] == [WarningCode.MISSING_PRICE]
        assert not snap.is_complete

    def test_negative_cash_warning(self):
        ledger = [make_tx("BUY", BUY_DAY, instrument_id="inst-aapl", quantity=1, price=100)]
        snap = _engine(ledger, {"inst-aapl": {BUY_DAY: 100.0}}).get_snapshot(as_of=BUY_DAY)

        codes = [w.code for w in snap.warnings]
        assert codes == [WarningCode.NEGATIVE_CASH]
        assert snap.warnings[0].symbol == CASH_SYMBOL

    def test_weights_finite_when_total_is_zero(self):
        ledger = [make_tx("BUY", BUY_DAY, instrument_id="inst-aapl", quantity=1, price=100)]
        snap = _engine(ledger, {"inst-aapl": {BUY_DAY: 100.0}}).get_snapshot(as_of=BUY_DAY)

        assert snap.totals.total_value == pytest.approx(0)
        assert all(math.isfinite(h.portfolio_weight_pct) for h in snap.holdings)
        aapl = next(h for h in snap.holdings if h.symbol == "AAPL")
        assert aapl.portfolio_weight_pct == pytest.approx(10000)

    def test_zero_cash_row_omitted(self):
        ledger = [make_tx("DEPOSIT", DEPOSIT_DAY, amount=100), make_tx("WITHDRAWAL", BUY_DAY, amount=100)]
        snap = _engine(ledger).get_snapshot(as_of=AS_OF)
        assert snap.holdings == []
        assert snap.totals.total_value == 0

    def test_unresolved_instrument_skipped(self):
        snap = _engine(_aapl_ledger(), AAPL_CLOSES, infos=[]).get_snapshot(as_of=AS_OF)
        assert [h.symbol for h in snap.holdings] == [CASH_SYMBOL]
        assert snap.totals.market_value == 0

    def test_transactions_after_as_of_ignored(self):
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=DEPOSIT_DAY)
        assert snap.totals.total_value == pytest.approx(50000)
        assert len(snap.holdings) == 1

    def test_account_scope(self):
        ledger = _aapl_ledger() + [make_tx("DEPOSIT", DEPOSIT_DAY, account_id="acct-2", amount=7)]
        engine = _engine(ledger, AAPL_CLOSES)

        assert engine.get_snapshot(account_id="acct-2", as_of=AS_OF).totals.total_value == 7
        whole = engine.get_snapshot(as_of=AS_OF)
        assert whole.totals.cash_value == pytest.approx(38607)
        assert whole.account_id is None
        assert {h.account_id for h in whole.holdings if h.kind is AssetKind.CASH} == {"acct-1", "acct-2"}

    def test_deterministic(self):
        engine = _engine(_aapl_ledger(), AAPL_CLOSES)
        assert engine.get_snapshot(as_of=AS_OF) == engine.get_snapshot(as_of=AS_OF)


class TestSnapshotCache:
    def test_engine_reuses_cached_snapshot(self):
        cache = SnapshotCache()
        engine = _engine(_aapl_ledger(), AAPL_CLOSES, cache=cache)

        first = engine.get_snapshot(as_of=AS_OF)
        calls = engine.prices.calls
        second = engine.get_snapshot(as_of=AS_OF)

        assert second is first
        assert engine.prices.calls == calls
        assert cache.hits == 1
        assert len(cache) == 1

    def test_keys_include_account(self):
        cache = SnapshotCache()
        engine = _engine(_aapl_ledger(), AAPL_CLOSES, cache=cache)
        engine.get_snapshot(as_of=AS_OF)
        engine.get_snapshot(account_id="acct-1", as_of=AS_OF)
        assert len(cache) == 2

    def test_expiry(self):
        cache = SnapshotCache(ttl_seconds=10)
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=AS_OF)
        with patch("portfolio_core.valuation.cache.time.monotonic", return_value=1000.0):
            cache.set(None, AS_OF, snap)
        with patch("portfolio_core.valuation.cache.time.monotonic", return_value=1005.0):
            assert cache.get(None, AS_OF) is snap
        with patch("portfolio_core.valuation.cache.time.monotonic", return_value=1011.0):
            assert cache.get(None, AS_OF) is None
        assert len(cache) == 0

    def test_invalidate_and_clear(self):
        cache = SnapshotCache()
        snap = _engine(_aapl_ledger(), AAPL_CLOSES).get_snapshot(as_of=AS_OF)
        cache.set(None, AS_OF, snap)
        cache.set("acct-1", AS_OF, snap)
        cache.invalidate(None, AS_OF)
        cache.invalidate(None, date(2000, 1, 1))
        assert len(cache) == 1
        cache.clear()
        assert cache.get("acct-1", AS_OF) is None
        assert cache.misses == 1
