"""Data freshness: when prices were last fetched and valuations last written."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio_core.dates import as_utc
from portfolio_core.db.tables.market_data import PricePointRow
from portfolio_core.db.tables.valuation import DailyValuationRow
from portfolio_core.models.refresh import RefreshFreshness


def get_refresh_status(session: Session) -> RefreshFreshness:
    last_fetch = session.execute(select(func.max(PricePointRow.fetched_at))).scalar()
    last_materialized = session.execute(select(func.max(DailyValuationRow.created_at))).scalar()
    last_date = session.execute(select(func.max(DailyValuationRow.date))).scalar()
    return RefreshFreshness(
        last_price_fetched_at=as_utc(last_fetch) if last_fetch else None,
        last_valuation_materialized_at=as_utc(last_materialized) if last_materialized else None,
        last_valuation_date=last_date,
    )
