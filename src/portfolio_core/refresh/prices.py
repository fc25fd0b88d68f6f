"""Daily close ingestion from a market data provider into ``price_points``."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from datetime import date, datetime, timezone

import httpx
import structlog
from sqlalchemy.orm import Session

from portfolio_core.dates import utc_today
from portfolio_core.db.tables.ledger import InstrumentRow, utcnow
from portfolio_core.db.tables.market_data import PricePointRow
from portfolio_core.errors import DomainValidationError, MarketDataError
from portfolio_core.models.market import DailyClose
from portfolio_core.models.refresh import PriceRefreshResult
from portfolio_core.models.valuation import AssetKind

log = structlog.get_logger("price_refresh")

PRICED_KINDS = (AssetKind.STOCK.value, AssetKind.ETF.value)


class MarketDataProvider(ABC):
    @abstractmethod
    def daily_closes(self, symbol: str, from_date: date, to_date: date) -> list[DailyClose]:
        """Daily closes for *symbol* in [from_date, to_date], oldest first."""


class PolygonProvider(MarketDataProvider):
    """Polygon.io daily aggregates over a synchronous httpx client."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str = "https://api.polygon.io",
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._owns_client = client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def daily_closes(self, symbol: str, from_date: date, to_date: date) -> list[DailyClose]:
        if not self.api_key:
            raise MarketDataError("POLYGON_API_KEY is not configured")

        url = (
            f"{self.base_url}/v2/aggs/ticker/{symbol}/range/1/day/"
            f"{from_date.isoformat()}/{to_date.isoformat()}"
        )
        resp = self._client.get(
            url,
            params={"adjusted": "true", "sort": "asc", "limit": 50000, "apiKey": self.api_key},
        )
        if resp.status_code >= 400:
            raise MarketDataError(
                f"Polygon request failed for {symbol}: {resp.status_code} {resp.reason_phrase}"
            )
        payload = resp.json()
        if payload.get("status") == "ERROR":
            raise MarketDataError(payload.get("error") or f"Polygon returned error for {symbol}")

        # "t" is the bar open in epoch milliseconds
        return [
            DailyClose(
                date=datetime.fromtimestamp(item["t"] / 1000, tz=timezone.utc).date(),
                close=float(item["c"]),
            )
            for item in payload.get("results") or []
        ]


def refresh_prices(
    session: Session,
    provider: MarketDataProvider,
    symbols: Sequence[str] | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
    source: str = "polygon",
) -> PriceRefreshResult:
    """Fetch and upsert closes for active STOCK/ETF instruments.

    With *symbols* only those instruments are refreshed and any symbol that
    does not match one is reported as missing.  Provider errors propagate
    with whatever was already flushed left to the caller's transaction.
    """
    today = utc_today()
    start = from_date or today
    end = to_date or today
    if start > end:
        raise DomainValidationError("from must be <= to")

    wanted = [s.upper() for s in symbols] if symbols else None
    q = session.query(InstrumentRow).filter(
        InstrumentRow.kind.in_(PRICED_KINDS),
        InstrumentRow.is_active.is_(True),
    )
    if wanted:
        q = q.filter(InstrumentRow.symbol.in_(wanted))
    instruments = q.order_by(InstrumentRow.symbol, InstrumentRow.id).all()

    requested = wanted if wanted else list(dict.fromkeys(i.symbol for i in instruments))
    processed: list[str] = []
    points = 0

    for instrument in instruments:
        closes = provider.daily_closes(instrument.symbol, start, end)
        existing = {
            row.date: row
            for row in session.query(PricePointRow).filter(
                PricePointRow.instrument_id == instrument.id,
                PricePointRow.source == source,
                PricePointRow.date >= start,
                PricePointRow.date <= end,
            )
        }
        for bar in closes:
            row = existing.get(bar.date)
            if row is None:
                row = PricePointRow(instrument_id=instrument.id, date=bar.date, close=bar.close, source=source)
                session.add(row)
                existing[bar.date] = row
            else:
                row.close = bar.close
                row.fetched_at = utcnow()
            points += 1
        session.flush()
        processed.append(instrument.symbol)
        log.debug("prices_fetched", symbol=instrument.symbol, points=len(closes))

    missing = [s for s in requested if s not in processed]
    log.info(
        "prices_refreshed",
        from_date=start.isoformat(),
        to_date=end.isoformat(),
        processed=len(processed),
        missing=missing,
        points=points,
    )
    return PriceRefreshResult(
        requested_symbols=requested,
        processed_symbols=processed,
        missing_symbols=missing,
        points_upserted=points,
    )
