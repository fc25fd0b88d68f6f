"""Money-weighted and time-weighted returns over a resolved period."""

from __future__ import annotations

from datetime import date

import structlog

from portfolio_core.dates import add_days, date_range_inclusive, start_of_year, utc_today
from portfolio_core.errors import InvalidPeriodError
from portfolio_core.ledger.replay import EPSILON
from portfolio_core.models.performance import PerformanceMetrics, PeriodBounds, PeriodType
from portfolio_core.models.transaction import TransactionType
from portfolio_core.models.valuation import ValuationSnapshot
from portfolio_core.performance.xirr import CashFlow, solve_xirr
from portfolio_core.sources.base import TransactionSource
from portfolio_core.valuation.snapshot import ValuationEngine

log = structlog.get_logger("performance")


class PerformanceEngine:
    """MWR (XIRR) and daily-chained TWR built on repeated snapshots.

    The TWR walk values the scope once per calendar day; give the
    :class:`ValuationEngine` a ``SnapshotCache`` to share those snapshots
    across calls.
    """

    def __init__(self, valuation: ValuationEngine, transactions: TransactionSource) -> None:
        self.valuation = valuation
        self.transactions = transactions

    def resolve_period(
        self,
        period: PeriodType | str,
        as_of: date,
        account_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> PeriodBounds:
        try:
            period = PeriodType(period)
        except ValueError:
            raise InvalidPeriodError(f"Unknown period {period!r}") from None

        if period is PeriodType.CUSTOM:
            if from_date is None or to_date is None:
                raise InvalidPeriodError("custom period requires from and to")
            if from_date > to_date:
                raise InvalidPeriodError("custom period requires from <= to")
            if to_date > as_of:
                raise InvalidPeriodError("custom period to must be <= as_of")
            return PeriodBounds(type=period, start_date=from_date, end_date=to_date)

        if period is PeriodType.YTD:
            return PeriodBounds(type=period, start_date=start_of_year(as_of), end_date=as_of)

        first = self.transactions.first_trade_date(account_id)
        return PeriodBounds(type=period, start_date=first or as_of, end_date=as_of)

    def external_flows(self, account_id: str | None, start: date, end: date) -> dict[date, float]:
        """Net deposits minus withdrawals per trade date within [start, end]."""
        flows: dict[date, float] = {}
        for tx in self.transactions.list_transactions(account_id, end):
            if tx.trade_date < start:
                continue
            if tx.type is TransactionType.DEPOSIT:
                delta = tx.amount or 0.0
            elif tx.type is TransactionType.WITHDRAWAL:
                delta = -(tx.amount or 0.0)
            else:
                continue
            flows[tx.trade_date] = flows.get(tx.trade_date, 0.0) + delta
        return flows

    def get_metrics(
        self,
        account_id: str | None = None,
        period: PeriodType | str = PeriodType.SINCE_INCEPTION,
        as_of: date | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> PerformanceMetrics:
        as_of = as_of or utc_today()
        bounds = self.resolve_period(period, as_of, account_id, from_date, to_date)
        start, end = bounds.start_date, bounds.end_date

        memo: dict[date, ValuationSnapshot] = {}

        def total_at(day: date) -> float:
            if day not in memo:
                memo[day] = self.valuation.get_snapshot(account_id, day)
            return memo[day].totals.total_value

        start_value = total_at(add_days(start, -1))
        end_value = total_at(end)
        flows = self.external_flows(account_id, start, end)

        # deposits are investor outflows, withdrawals inflows
        cash_flows = [CashFlow(start, -start_value)]
        for day in date_range_inclusive(start, end):
            flow = flows.get(day, 0.0)
            if abs(flow) > EPSILON:
                cash_flows.append(CashFlow(day, -flow))
        cash_flows.append(CashFlow(end, end_value))
        mwr = solve_xirr(cash_flows)

        chain = 1.0
        prev = start_value
        for day in date_range_inclusive(start, end):
            flow = flows.get(day, 0.0)
            curr = total_at(day)
            daily = (curr - prev - flow) / prev if abs(prev) > EPSILON else 0.0
            chain *= 1.0 + daily
            prev = curr
        twr = chain - 1.0

        log.debug(
            "performance_computed",
            account_id=account_id,
            period=bounds.type.value,
            start=start.isoformat(),
            end=end.isoformat(),
            mwr=mwr,
            twr=twr,
        )
        return PerformanceMetrics(
            period=bounds,
            mwr=mwr,
            twr=twr,
            start_value=start_value,
            end_value=end_value,
        )
