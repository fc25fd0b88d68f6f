"""Overview composition: valuation, performance, look-through, classification."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

import structlog
from sqlalchemy import desc
from sqlalchemy.orm import Session

from portfolio_core.dates import as_utc, utc_today
from portfolio_core.db.tables.valuation import DailyValuationRow
from portfolio_core.errors import DomainValidationError
from portfolio_core.exposure.classification import CASH_CURRENCY, UNCLASSIFIED
from portfolio_core.lifecycle.tracker import WarningLifecycleTracker
from portfolio_core.models.exposure import LookThroughMeta
from portfolio_core.models.lifecycle import OverviewMode
from portfolio_core.models.overview import (
    OverviewFilters,
    OverviewFreshness,
    OverviewSnapshot,
    OverviewTotals,
)
from portfolio_core.models.performance import PeriodType
from portfolio_core.models.valuation import AssetKind, Holding
from portfolio_core.overview.engines import PortfolioEngines
from portfolio_core.refresh.status import get_refresh_status
from portfolio_core.valuation.snapshot import apply_weights

log = structlog.get_logger("overview")


def _parse_kind(value: AssetKind | str) -> AssetKind:
    if isinstance(value, AssetKind):
        return value
    try:
        return AssetKind(value.strip().upper())
    except ValueError:
        raise DomainValidationError(f"Invalid asset kind {value!r}") from None


def normalize_filters(
    asset_kinds: Iterable[AssetKind | str] | None = None,
    currencies: Iterable[str] | None = None,
) -> OverviewFilters:
    kinds = list(dict.fromkeys(_parse_kind(k) for k in asset_kinds or ()))
    ccys = list(dict.fromkeys(c.strip().upper() for c in currencies or ()))
    return OverviewFilters(asset_kinds=kinds, currencies=ccys)


def holding_currency(holding: Holding, currency_by_id: dict[str, str | None]) -> str:
    if holding.kind is AssetKind.CASH:
        return CASH_CURRENCY
    if holding.instrument_id:
        currency = currency_by_id.get(holding.instrument_id)
        if currency:
            return currency.upper()
    return UNCLASSIFIED


def _freshness(session: Session, as_of: date, account_id: str | None) -> OverviewFreshness:
    q = session.query(DailyValuationRow).filter(DailyValuationRow.date == as_of)
    if account_id is None:
        q = q.filter(DailyValuationRow.account_id.is_(None))
    else:
        q = q.filter(DailyValuationRow.account_id == account_id)
    scoped = q.order_by(desc(DailyValuationRow.created_at)).first()
    status = get_refresh_status(session)
    return OverviewFreshness(
        scoped_valuation_exists=scoped is not None,
        scoped_valuation_complete=scoped.completeness_flag if scoped is not None else None,
        scoped_valuation_materialized_at=as_utc(scoped.created_at) if scoped is not None else None,
        last_valuation_materialized_at=status.last_valuation_materialized_at,
        last_valuation_date=status.last_valuation_date,
        last_price_fetched_at=status.last_price_fetched_at,
    )


def get_overview(
    engines: PortfolioEngines,
    session: Session | None = None,
    tracker: WarningLifecycleTracker | None = None,
    account_id: str | None = None,
    as_of: date | None = None,
    period: PeriodType | str = PeriodType.SINCE_INCEPTION,
    from_date: date | None = None,
    to_date: date | None = None,
    mode: OverviewMode | str = OverviewMode.RAW,
    asset_kinds: Iterable[AssetKind | str] | None = None,
    currencies: Iterable[str] | None = None,
) -> OverviewSnapshot:
    """One portfolio view as of a date.

    Weights are always recomputed against the valuation total, so filtered
    views show each holding's share of the whole portfolio.  Warnings are
    reconciled through *tracker* only when no view filter is applied.
    Without a *session* the freshness block is left empty.
    """
    as_of = as_of or utc_today()
    mode = OverviewMode(mode)
    filters = normalize_filters(asset_kinds, currencies)

    valuation = engines.valuation.get_snapshot(account_id, as_of)
    performance = engines.performance.get_metrics(
        account_id=account_id,
        period=period,
        as_of=as_of,
        from_date=from_date,
        to_date=to_date,
    )

    holdings = valuation.holdings
    warnings = list(valuation.warnings)
    look_through: LookThroughMeta | None = None
    if mode is OverviewMode.LOOKTHROUGH:
        flattened = engines.exposure.apply_look_through(holdings, as_of)
        holdings = flattened.holdings
        warnings.extend(flattened.warnings)
        look_through = flattened.meta

    total_value = valuation.totals.total_value
    holdings = apply_weights(holdings, total_value)
    holdings.sort(key=lambda h: h.market_value, reverse=True)

    if filters.asset_kinds:
        holdings = [h for h in holdings if h.kind in filters.asset_kinds]
    if filters.currencies:
        infos = engines.exposure.instruments.get_by_ids(h.instrument_id for h in holdings if h.instrument_id)
        currency_by_id = {iid: info.currency for iid, info in infos.items()}
        holdings = [h for h in holdings if holding_currency(h, currency_by_id) in filters.currencies]

    classification = engines.exposure.build_classification_breakdown(holdings, total_value)
    warnings.extend(classification.warnings)

    if tracker is not None and not filters.active:
        tracker.reconcile(as_of, warnings, mode, account_id=account_id)

    log.info(
        "overview_built",
        account_id=account_id,
        as_of=as_of.isoformat(),
        mode=mode.value,
        holdings=len(holdings),
        warnings=len(warnings),
        filtered=filters.active,
    )
    totals = valuation.totals
    return OverviewSnapshot(
        as_of_date=as_of,
        account_id=account_id,
        mode=mode,
        totals=OverviewTotals(
            cash_value=totals.cash_value,
            market_value=totals.market_value,
            total_value=totals.total_value,
            realized_pnl=totals.realized_pnl,
            unrealized_pnl=totals.unrealized_pnl,
            mwr=performance.mwr,
            twr=performance.twr,
        ),
        performance=performance,
        holdings=holdings,
        warnings=warnings,
        look_through=look_through,
        classifications=classification.classifications,
        filters=filters,
        freshness=_freshness(session, as_of, account_id) if session is not None else OverviewFreshness(),
    )
