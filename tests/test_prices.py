"""Tests for the Polygon provider and price ingestion."""

from __future__ import annotations

from datetime import date, datetime, timezone

import httpx
import pytest

from fakes import FakeProvider, seed_instrument
from portfolio_core.db.tables.market_data import PricePointRow
from portfolio_core.errors import DomainValidationError, MarketDataError
from portfolio_core.models.market import DailyClose
from portfolio_core.refresh import PolygonProvider, refresh_prices

D1 = date(2025, 1, 2)
D2 = date(2025, 1, 3)


def _ms(day: date) -> int:
    return int(datetime(day.year, day.month, day.day, 5, tzinfo=timezone.utc).timestamp() * 1000)


def _provider(handler) -> PolygonProvider:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return PolygonProvider("test-key", base_url="https://polygon.test/", client=client)


class TestPolygonProvider:
    def test_parses_daily_aggregates(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(
                200,
                json={"status": "OK", "results": [{"t": _ms(D1), "c": 100.5}, {"t": _ms(D2), "c": 101}]},
            )

        closes = _provider(handler).daily_closes("AAPL", D1, D2)

        assert closes == [DailyClose(date=D1, close=100.5), DailyClose(date=D2, close=101.0)]
        assert seen["path"] == "/v2/aggs/ticker/AAPL/range/1/day/2025-01-02/2025-01-03"
        assert seen["params"]["apiKey"] == "test-key"
        assert seen["params"]["adjusted"] == "true"

    def test_empty_results(self):
        closes = _provider(lambda r: httpx.Response(200, json={"status": "OK"})).daily_closes("AAPL", D1, D2)
        assert closes == []

    def test_http_error(self):
        with pytest.raises(MarketDataError, match="403"):
            _provider(lambda r: httpx.Response(403)).daily_closes("AAPL", D1, D2)

    def test_error_status_payload(self):
        handler = lambda r: httpx.Response(200, json={"status": "ERROR", "error": "Unknown API Key"})  # noqa: E731
        with pytest.raises(MarketDataError, match="Unknown API Key"):
            _provider(handler).daily_closes("AAPL", D1, D2)

    def test_missing_api_key(self):
        def handler(request):
            raise AssertionError("no request expected")

        provider = PolygonProvider(None, client=httpx.Client(transport=httpx.MockTransport(handler)))
        with pytest.raises(MarketDataError, match="POLYGON_API_KEY"):
            provider.daily_closes("AAPL", D1, D2)


def _seed_universe(session):
    seed_instrument(session, "AAPL")
    seed_instrument(session, "SPY", kind="ETF")
    seed_instrument(session, "USD", kind="CASH")
    seed_instrument(session, "OLD", is_active=False)


CLOSES = {
    "AAPL": [DailyClose(date=D1, close=100), DailyClose(date=D2, close=102)],
    "SPY": [DailyClose(date=D2, close=500)],
}


class TestRefreshPrices:
    def test_active_priced_instruments_only(self, db_session):
        _seed_universe(db_session)
        provider = FakeProvider(CLOSES)

        result = refresh_prices(db_session, provider, from_date=D1, to_date=D2)
        db_session.commit()

        assert sorted(s for s, _, _ in provider.requests) == ["AAPL", "SPY"]
        assert result.processed_symbols == ["AAPL", "SPY"]
        assert result.missing_symbols == []
        assert result.points_upserted == 3
        assert db_session.query(PricePointRow).count() == 3

    def test_rerun_updates_in_place(self, db_session):
        _seed_universe(db_session)
        refresh_prices(db_session, FakeProvider(CLOSES), from_date=D1, to_date=D2)
        changed = {"AAPL": [DailyClose(date=D2, close=103)]}
        refresh_prices(db_session, FakeProvider(changed), symbols=["AAPL"], from_date=D1, to_date=D2)
        db_session.commit()

        rows = db_session.query(PricePointRow).filter(PricePointRow.instrument_id == "inst-aapl").all()
        assert len(rows) == 2
        assert {r.date: r.close for r in rows} == {D1: 100, D2: 103}

    def test_unknown_symbols_reported_missing(self, db_session):
        _seed_universe(db_session)
        result = refresh_prices(
            db_session, FakeProvider(CLOSES), symbols=["aapl", "zzz", "OLD"], from_date=D1, to_date=D2
        )
        assert result.requested_symbols == ["AAPL", "ZZZ", "OLD"]
        assert result.processed_symbols == ["AAPL"]
        assert result.missing_symbols == ["ZZZ", "OLD"]

    def test_source_label(self, db_session):
        _seed_universe(db_session)
        refresh_prices(db_session, FakeProvider(CLOSES), symbols=["SPY"], from_date=D1, to_date=D2, source="manual")
        assert db_session.query(PricePointRow).one().source == "manual"

    def test_provider_error_propagates(self, db_session):
        _seed_universe(db_session)
        with pytest.raises(MarketDataError):
            refresh_prices(db_session, FakeProvider(CLOSES, fail_on=["SPY"]), from_date=D1, to_date=D2)

    def test_inverted_range(self, db_session):
        with pytest.raises(DomainValidationError):
            refresh_prices(db_session, FakeProvider(), from_date=D2, to_date=D1)
