"""Tests for curated ETF constituent ingestion."""

from __future__ import annotations

from datetime import date

import pytest

from fakes import seed_constituent, seed_instrument
from portfolio_core.db.tables.market_data import EtfConstituentRow
from portfolio_core.errors import DomainValidationError
from portfolio_core.exposure import ingest_etf_constituents
from portfolio_core.models.market import ConstituentIngest

AS_OF = date(2025, 3, 31)


def _payload(rows, replace_existing=True, as_of=AS_OF):
    return ConstituentIngest(
        as_of_date=as_of,
        replace_existing=replace_existing,
        rows=[{"etf_symbol": e, "constituent_symbol": c, "weight": w} for e, c, w in rows],
    )


def _weights(session, as_of=AS_OF):
    rows = session.query(EtfConstituentRow).filter(EtfConstituentRow.as_of_date == as_of).all()
    return {(r.etf_instrument_id, r.constituent_symbol): r.weight for r in rows}


class TestIngest:
    def test_lowercase_stored_symbol_resolves(self, db_session):
        seed_instrument(db_session, "spy", kind="ETF", instrument_id="inst-spy")
        result = ingest_etf_constituents(db_session, _payload([("SPY", "AAPL", 0.07)]))
        assert result.etfs_processed == ["SPY"]
        assert _weights(db_session) == {("inst-spy", "AAPL"): 0.07}

    def test_writes_rows(self, db_session):
        seed_instrument(db_session, "SPY", kind="ETF")
        result = ingest_etf_constituents(db_session, _payload([("spy", "aapl", 0.07), ("SPY", "MSFT", 0.06)]))
        db_session.commit()

        assert result.etfs_processed == ["SPY"]
        assert result.rows_written == 2
        assert result.rows_received == 2
        assert _weights(db_session) == {("inst-spy", "AAPL"): 0.07, ("inst-spy", "MSFT"): 0.06}

    def test_duplicates_keep_last_weight(self, db_session):
        seed_instrument(db_session, "SPY", kind="ETF")
        result = ingest_etf_constituents(db_session, _payload([("SPY", "AAPL", 0.07), ("SPY", "AAPL", 0.09)]))
        assert result.rows_written == 1
        assert result.rows_received == 2
        assert _weights(db_session) == {("inst-spy", "AAPL"): 0.09}

    def test_unknown_etf_rejected_and_nothing_written(self, db_session):
        seed_instrument(db_session, "SPY", kind="ETF")
        seed_instrument(db_session, "AAPL", kind="STOCK")
        with pytest.raises(DomainValidationError, match="AAPL"):
            ingest_etf_constituents(db_session, _payload([("SPY", "MSFT", 0.1), ("AAPL", "X", 0.1)]))
        assert _weights(db_session) == {}

    def test_replace_drops_same_date_dataset(self, db_session):
        seed_instrument(db_session, "SPY", kind="ETF")
        seed_constituent(db_session, "inst-spy", "OLD", 0.5, AS_OF)
        seed_constituent(db_session, "inst-spy", "KEEP", 0.5, date(2025, 2, 28))

        ingest_etf_constituents(db_session, _payload([("SPY", "NEW", 0.3)]))
        db_session.commit()

        assert _weights(db_session) == {("inst-spy", "NEW"): 0.3}
        assert _weights(db_session, date(2025, 2, 28)) == {("inst-spy", "KEEP"): 0.5}

    def test_without_replace_upserts(self, db_session):
        seed_instrument(db_session, "SPY", kind="ETF")
        seed_constituent(db_session, "inst-spy", "AAPL", 0.5, AS_OF)
        seed_constituent(db_session, "inst-spy", "MSFT", 0.2, AS_OF)

        ingest_etf_constituents(db_session, _payload([("SPY", "AAPL", 0.6)], replace_existing=False))
        db_session.commit()

        assert _weights(db_session) == {("inst-spy", "AAPL"): 0.6, ("inst-spy", "MSFT"): 0.2}
