"""Daily valuation materialization into ``portfolio_valuation.daily_valuations``."""

from __future__ import annotations

from datetime import date

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from portfolio_core.dates import date_range_inclusive, utc_today
from portfolio_core.db.tables.ledger import AccountRow, TransactionRow
from portfolio_core.db.tables.valuation import DailyValuationRow
from portfolio_core.errors import DomainValidationError
from portfolio_core.models.refresh import ValuationRecomputeResult
from portfolio_core.models.valuation import ValuationSnapshot
from portfolio_core.valuation.snapshot import ValuationEngine

log = structlog.get_logger("materialize")


def _upsert_daily_valuation(
    session: Session,
    day: date,
    account_id: str | None,
    snapshot: ValuationSnapshot,
) -> None:
    existing = (
        session.query(DailyValuationRow)
        .filter(
            DailyValuationRow.date == day,
            DailyValuationRow.account_id.is_(None)
            if account_id is None
            else DailyValuationRow.account_id == account_id,
        )
        .first()
    )
    totals = snapshot.totals
    if existing is not None:
        existing.cash_value = totals.cash_value
        existing.market_value = totals.market_value
        existing.total_value = totals.total_value
        existing.completeness_flag = snapshot.is_complete
        return
    session.add(
        DailyValuationRow(
            date=day,
            account_id=account_id,
            cash_value=totals.cash_value,
            market_value=totals.market_value,
            total_value=totals.total_value,
            completeness_flag=snapshot.is_complete,
        )
    )


def _resolve_bounds(
    session: Session,
    account_id: str | None,
    from_date: date | None,
    to_date: date | None,
) -> tuple[date, date]:
    if from_date and to_date and from_date > to_date:
        raise DomainValidationError("from must be <= to")

    stmt = select(func.min(TransactionRow.trade_date))
    if account_id is not None:
        stmt = stmt.where(TransactionRow.account_id == account_id)
    first_trade = session.execute(stmt).scalar()

    today = utc_today()
    resolved_to = to_date or today
    resolved_from = from_date or first_trade or resolved_to
    if resolved_from > resolved_to:
        raise DomainValidationError("from must be <= to")
    return resolved_from, resolved_to


def recompute_daily_valuations(
    session: Session,
    engine: ValuationEngine,
    account_id: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> ValuationRecomputeResult:
    """Snapshot every day in range and upsert one row per scope per day.

    Unscoped runs write a whole-portfolio row (``account_id`` NULL) plus one
    row per account; scoped runs write only that account's rows.  Rows are
    flushed, not committed.
    """
    if account_id is not None and session.get(AccountRow, account_id) is None:
        raise DomainValidationError(f"Account {account_id} does not exist")

    start, end = _resolve_bounds(session, account_id, from_date, to_date)
    if account_id is not None:
        account_ids = [account_id]
    else:
        account_ids = list(session.execute(select(AccountRow.id).order_by(AccountRow.id)).scalars())

    dates_processed = 0
    portfolio_rows = 0
    account_rows = 0
    for day in date_range_inclusive(start, end):
        dates_processed += 1
        if account_id is None:
            _upsert_daily_valuation(session, day, None, engine.get_snapshot(None, day))
            portfolio_rows += 1
        for scoped in account_ids:
            _upsert_daily_valuation(session, day, scoped, engine.get_snapshot(scoped, day))
            account_rows += 1
    session.flush()

    log.info(
        "valuations_materialized",
        account_id=account_id,
        from_date=start.isoformat(),
        to_date=end.isoformat(),
        dates=dates_processed,
        rows=portfolio_rows + account_rows,
    )
    return ValuationRecomputeResult(
        from_date=start,
        to_date=end,
        dates_processed=dates_processed,
        rows_upserted=portfolio_rows + account_rows,
        portfolio_rows_upserted=portfolio_rows,
        account_rows_upserted=account_rows,
    )


def list_daily_valuations(
    session: Session,
    account_id: str | None = None,
    from_date: date | None = None,
    to_date: date | None = None,
) -> list[DailyValuationRow]:
    """Materialized rows ordered by date then account (portfolio rows first)."""
    if from_date and to_date and from_date > to_date:
        raise DomainValidationError("from must be <= to")

    q = session.query(DailyValuationRow)
    if account_id is not None:
        q = q.filter(DailyValuationRow.account_id == account_id)
    if from_date is not None:
        q = q.filter(DailyValuationRow.date >= from_date)
    if to_date is not None:
        q = q.filter(DailyValuationRow.date <= to_date)
    return q.order_by(
        DailyValuationRow.date,
        DailyValuationRow.account_id.is_not(None),
        DailyValuationRow.account_id,
    ).all()
