"""Overview and metric audit payloads."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from portfolio_core.models.exposure import ClassificationBreakdown, LookThroughMeta
from portfolio_core.models.lifecycle import OverviewMode
from portfolio_core.models.performance import PerformanceMetrics
from portfolio_core.models.valuation import AssetKind, DataWarning, Holding


class OverviewTotals(BaseModel):
    cash_value: float
    market_value: float
    total_value: float
    realized_pnl: float
    unrealized_pnl: float
    mwr: float | None = None
    twr: float | None = None


class OverviewFilters(BaseModel):
    asset_kinds: list[AssetKind] = Field(default_factory=list)
    currencies: list[str] = Field(default_factory=list)

    @property
    def active(self) -> bool:
        return bool(self.asset_kinds or self.currencies)


class OverviewFreshness(BaseModel):
    scoped_valuation_exists: bool = False
    scoped_valuation_complete: bool | None = None
    scoped_valuation_materialized_at: datetime | None = None
    last_valuation_materialized_at: datetime | None = None
    last_valuation_date: date | None = None
    last_price_fetched_at: datetime | None = None


class OverviewSnapshot(BaseModel):
    as_of_date: date
    account_id: str | None = None
    mode: OverviewMode
    totals: OverviewTotals
    performance: PerformanceMetrics
    holdings: list[Holding]
    warnings: list[DataWarning]
    look_through: LookThroughMeta | None = None
    classifications: ClassificationBreakdown
    filters: OverviewFilters
    freshness: OverviewFreshness


class AuditMetric(str, Enum):
    TOTAL_VALUE = "total_value"
    MARKET_VALUE = "market_value"
    CASH_VALUE = "cash_value"
    REALIZED_PNL = "realized_pnl"
    UNREALIZED_PNL = "unrealized_pnl"
    MWR = "mwr"
    TWR = "twr"


class AuditScopeDimension(str, Enum):
    HOLDING = "holding"
    COUNTRY = "country"
    SECTOR = "sector"
    INDUSTRY = "industry"
    CURRENCY = "currency"


class AuditScope(BaseModel):
    dimension: AuditScopeDimension
    symbol: str


class AuditHolding(BaseModel):
    account_id: str
    instrument_id: str | None = None
    symbol: str
    kind: AssetKind
    market_value: float
    portfolio_weight_pct: float


class AuditTransaction(BaseModel):
    id: str
    account_id: str
    instrument_id: str | None = None
    type: str
    trade_date: date
    amount: float | None = None
    fee_amount: float
    signed_cash_delta: float


class AuditWarning(BaseModel):
    code: str
    severity: str
    account_id: str | None = None
    instrument_id: str | None = None
    date: date
    resolved_at: date | None = None
    message: str | None = None
    symbol: str | None = None


class AuditContributors(BaseModel):
    holdings: list[AuditHolding] = Field(default_factory=list)
    transactions: list[AuditTransaction] = Field(default_factory=list)
    warnings: list[AuditWarning] = Field(default_factory=list)


class MetricAudit(BaseModel):
    metric: AuditMetric
    as_of_date: date
    account_id: str | None = None
    mode: OverviewMode
    scope: AuditScope | None = None
    value: float | None = None
    contributors: AuditContributors = Field(default_factory=AuditContributors)
