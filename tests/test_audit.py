"""Tests for the metric audit trail."""

from __future__ import annotations

import pytest

from fakes import SAMPLE_AS_OF, SAMPLE_TOTAL, seed_sample_portfolio
from portfolio_core.audit import get_metric_audit, parse_metric, parse_scope
from portfolio_core.db.tables.valuation import WarningEventRow
from portfolio_core.errors import DomainValidationError
from portfolio_core.lifecycle import SqlWarningLedgerStore, WarningLifecycleTracker
from portfolio_core.models.lifecycle import OverviewMode
from portfolio_core.models.overview import AuditMetric, AuditScopeDimension
from portfolio_core.models.valuation import DataWarning, WarningCode
from portfolio_core.overview import build_default_engines


@pytest.fixture
def portfolio(db_session):
    seed_sample_portfolio(db_session)
    return build_default_engines(db_session)


@pytest.fixture
def store(db_session):
    return SqlWarningLedgerStore(db_session)


def _audit(portfolio, store, metric="total_value", **kwargs):
    return get_metric_audit(portfolio, store, metric, as_of=SAMPLE_AS_OF, **kwargs)


def _symbols(audit):
    return [h.symbol for h in audit.contributors.holdings]


class TestParsing:
    def test_metric(self):
        assert parse_metric("mwr") is AuditMetric.MWR
        with pytest.raises(DomainValidationError, match="Use one of"):
            parse_metric("sharpe")

    def test_scope_absent(self):
        assert parse_scope(None, None) is None
        assert parse_scope("", "") is None

    def test_scope_needs_both_parts(self):
        with pytest.raises(DomainValidationError):
            parse_scope("country", None)
        with pytest.raises(DomainValidationError):
            parse_scope(None, "US")

    def test_scope_dimension_checked(self):
        assert parse_scope("sector", "Technology").dimension is AuditScopeDimension.SECTOR
        with pytest.raises(DomainValidationError):
            parse_scope("planet", "Earth")


class TestUnscoped:
    def test_value_and_contributors(self, portfolio, store):
        audit = _audit(portfolio, store)

        assert audit.value == pytest.approx(SAMPLE_TOTAL)
        assert audit.scope is None
        assert sorted(_symbols(audit)) == ["AAPL", "CASH", "SAP", "SPY"]
        assert [t.type for t in audit.contributors.transactions] == ["DEPOSIT", "BUY", "BUY", "BUY"]
        assert sum(t.signed_cash_delta for t in audit.contributors.transactions) == pytest.approx(6800)

    def test_other_metrics(self, portfolio, store):
        assert _audit(portfolio, store, "cash_value").value == pytest.approx(6800)
        assert _audit(portfolio, store, AuditMetric.UNREALIZED_PNL).value == pytest.approx(700)
        assert _audit(portfolio, store, "twr").value is not None

    def test_audit_does_not_touch_ledger(self, portfolio, store, db_session):
        _audit(portfolio, store)
        assert db_session.query(WarningEventRow).count() == 0


class TestScoped:
    def test_holding_scope(self, portfolio, store):
        audit = _audit(portfolio, store, scope_dimension="holding", scope_symbol="aapl")
        assert _symbols(audit) == ["AAPL"]
        [tx] = audit.contributors.transactions
        assert tx.instrument_id == "inst-aapl"
        assert tx.signed_cash_delta == pytest.approx(-1000)

    def test_cash_scope_keeps_every_transaction(self, portfolio, store):
        audit = _audit(portfolio, store, "cash_value", scope_dimension="holding", scope_symbol="CASH")
        assert _symbols(audit) == ["CASH"]
        assert len(audit.contributors.transactions) == 4

    def test_country_scope(self, portfolio, store):
        audit = _audit(portfolio, store, scope_dimension="country", scope_symbol="de")
        assert _symbols(audit) == ["SAP"]
        assert [t.instrument_id for t in audit.contributors.transactions] == ["inst-sap"]

    def test_lookthrough_constituent_matched_by_symbol(self, portfolio, store):
        audit = _audit(
            portfolio,
            store,
            mode=OverviewMode.LOOKTHROUGH,
            scope_dimension="industry",
            scope_symbol="Software",
        )
        [holding] = audit.contributors.holdings
        assert holding.symbol == "MSFT"
        assert holding.instrument_id is None
        assert holding.market_value == pytest.approx(750)
        # MSFT is only held through SPY, so no direct trades
        assert audit.contributors.transactions == []


class TestWarnings:
    def _record_missing_price(self, db_session):
        tracker = WarningLifecycleTracker(SqlWarningLedgerStore(db_session))
        warning = DataWarning(
            code=WarningCode.MISSING_PRICE,
            message="Missing price for AAPL",
            account_id="acct-1",
            instrument_id="inst-aapl",
            symbol="AAPL",
        )
        tracker.reconcile(SAMPLE_AS_OF, [warning], OverviewMode.RAW)

    def test_unscoped_lists_ledger(self, portfolio, store, db_session):
        self._record_missing_price(db_session)
        [warning] = _audit(portfolio, store).contributors.warnings
        assert warning.code == "MISSING_PRICE"
        assert warning.severity == "ERROR"
        assert warning.resolved_at is None

    def test_scope_filters_warnings(self, portfolio, store, db_session):
        self._record_missing_price(db_session)
        in_scope = _audit(portfolio, store, scope_dimension="holding", scope_symbol="AAPL")
        out_of_scope = _audit(portfolio, store, scope_dimension="holding", scope_symbol="SAP")
        assert len(in_scope.contributors.warnings) == 1
        assert out_of_scope.contributors.warnings == []

    def test_mode_separates_ledgers(self, portfolio, store, db_session):
        self._record_missing_price(db_session)
        audit = _audit(portfolio, store, mode="lookthrough")
        assert audit.contributors.warnings == []
