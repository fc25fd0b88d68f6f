"""Metric audit: which holdings, transactions and warnings stand behind a number."""

from __future__ import annotations

from datetime import date
from typing import assert_never

import structlog

from portfolio_core.dates import utc_today
from portfolio_core.errors import DomainValidationError
from portfolio_core.exposure.classification import classification_for, resolve_instruments
from portfolio_core.ledger.arithmetic import transaction_cash_delta
from portfolio_core.ledger.ordering import sort_for_replay
from portfolio_core.lifecycle.store import WarningLedgerStore
from portfolio_core.models.lifecycle import OverviewMode
from portfolio_core.models.overview import (
    AuditContributors,
    AuditHolding,
    AuditMetric,
    AuditScope,
    AuditScopeDimension,
    AuditTransaction,
    AuditWarning,
    MetricAudit,
    OverviewSnapshot,
)
from portfolio_core.models.valuation import Holding
from portfolio_core.overview.engines import PortfolioEngines
from portfolio_core.overview.service import get_overview
from portfolio_core.valuation.snapshot import CASH_SYMBOL

log = structlog.get_logger("audit")

RECENT_WARNING_LIMIT = 100


def parse_metric(value: AuditMetric | str) -> AuditMetric:
    try:
        return AuditMetric(value)
    except ValueError:
        allowed = ", ".join(m.value for m in AuditMetric)
        raise DomainValidationError(f"Invalid metric {value!r}. Use one of: {allowed}") from None


def parse_scope(dimension: str | None, symbol: str | None) -> AuditScope | None:
    if not dimension and not symbol:
        return None
    if not dimension or not symbol:
        raise DomainValidationError("scope_dimension and scope_symbol must be provided together")
    try:
        parsed = AuditScopeDimension(dimension)
    except ValueError:
        allowed = ", ".join(d.value for d in AuditScopeDimension)
        raise DomainValidationError(f"Invalid scope_dimension {dimension!r}. Use one of: {allowed}") from None
    return AuditScope(dimension=parsed, symbol=symbol)


def metric_value(overview: OverviewSnapshot, metric: AuditMetric) -> float | None:
    totals = overview.totals
    match metric:
        case AuditMetric.TOTAL_VALUE:
            return totals.total_value
        case AuditMetric.MARKET_VALUE:
            return totals.market_value
        case AuditMetric.CASH_VALUE:
            return totals.cash_value
        case AuditMetric.REALIZED_PNL:
            return totals.realized_pnl
        case AuditMetric.UNREALIZED_PNL:
            return totals.unrealized_pnl
        case AuditMetric.MWR:
            return totals.mwr
        case AuditMetric.TWR:
            return totals.twr
        case _:
            assert_never(metric)


def _norm(value: str) -> str:
    return value.strip().upper()


def _scoped_holdings(engines: PortfolioEngines, holdings: list[Holding], scope: AuditScope) -> list[Holding]:
    if scope.dimension is AuditScopeDimension.HOLDING:
        return [h for h in holdings if _norm(h.symbol) == _norm(scope.symbol)]
    infos = resolve_instruments(holdings, engines.exposure.instruments)
    dim = scope.dimension.value
    return [
        h
        for h, info in zip(holdings, infos)
        if _norm(getattr(classification_for(h, info), dim)) == _norm(scope.symbol)
    ]


def get_metric_audit(
    engines: PortfolioEngines,
    warnings_store: WarningLedgerStore,
    metric: AuditMetric | str,
    account_id: str | None = None,
    as_of: date | None = None,
    mode: OverviewMode | str = OverviewMode.RAW,
    scope_dimension: str | None = None,
    scope_symbol: str | None = None,
) -> MetricAudit:
    """Explain *metric* for a scope.  Read-only: the warning ledger is not reconciled."""
    metric = parse_metric(metric)
    scope = parse_scope(scope_dimension, scope_symbol)
    as_of = as_of or utc_today()
    mode = OverviewMode(mode)

    overview = get_overview(engines, account_id=account_id, as_of=as_of, mode=mode)
    holdings = overview.holdings
    scoped_ids: set[str] = set()
    scoped_symbols: set[str] = set()
    if scope is not None:
        holdings = _scoped_holdings(engines, holdings, scope)
        scoped_ids = {h.instrument_id for h in holdings if h.instrument_id}
        no_id_symbols = {_norm(h.symbol) for h in holdings if not h.instrument_id}
        if no_id_symbols:
            scoped_ids.update(info.id for info in engines.exposure.instruments.get_by_symbols(no_id_symbols).values())
        scoped_symbols = {_norm(h.symbol) for h in holdings}

    cash_scope = (
        scope is not None and scope.dimension is AuditScopeDimension.HOLDING and _norm(scope.symbol) == CASH_SYMBOL
    )
    transactions = []
    for tx in sort_for_replay(engines.valuation.transactions.list_transactions(account_id, as_of)):
        if scope is not None and not cash_scope:
            if tx.instrument_id:
                if tx.instrument_id not in scoped_ids:
                    continue
            elif CASH_SYMBOL not in scoped_symbols:
                continue
        transactions.append(
            AuditTransaction(
                id=tx.id,
                account_id=tx.account_id,
                instrument_id=tx.instrument_id,
                type=tx.type.value,
                trade_date=tx.trade_date,
                amount=tx.amount,
                fee_amount=tx.fee_amount,
                signed_cash_delta=transaction_cash_delta(tx),
            )
        )

    warnings = []
    for entry in warnings_store.list_recent(mode, as_of, account_id, limit=RECENT_WARNING_LIMIT):
        if scope is not None:
            in_scope = (entry.instrument_id and entry.instrument_id in scoped_ids) or (
                entry.symbol and _norm(entry.symbol) in scoped_symbols
            )
            if not in_scope:
                continue
        warnings.append(
            AuditWarning(
                code=entry.code,
                severity=entry.severity,
                account_id=entry.account_id,
                instrument_id=entry.instrument_id,
                date=entry.date,
                resolved_at=entry.resolved_at,
                message=entry.message,
                symbol=entry.symbol,
            )
        )

    log.debug(
        "metric_audited",
        metric=metric.value,
        scope=scope.dimension.value if scope else None,
        holdings=len(holdings),
        transactions=len(transactions),
        warnings=len(warnings),
    )
    return MetricAudit(
        metric=metric,
        as_of_date=as_of,
        account_id=account_id,
        mode=mode,
        scope=scope,
        value=metric_value(overview, metric),
        contributors=AuditContributors(
            holdings=[
                AuditHolding(
                    account_id=h.account_id,
                    instrument_id=h.instrument_id,
                    symbol=h.symbol,
                    kind=h.kind,
                    market_value=h.market_value,
                    portfolio_weight_pct=h.portfolio_weight_pct,
                )
                for h in holdings
            ],
            transactions=transactions,
            warnings=warnings,
        ),
    )
