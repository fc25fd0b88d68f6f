"""Point-in-time valuation output: holdings, totals, data-quality warnings."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel, Field


class AssetKind(str, Enum):
    CASH = "CASH"
    STOCK = "STOCK"
    ETF = "ETF"
    OPTION = "OPTION"
    CUSTOM = "CUSTOM"


class WarningCode(str, Enum):
    MISSING_PRICE = "MISSING_PRICE"
    STALE_PRICE_FALLBACK = "STALE_PRICE_FALLBACK"
    NEGATIVE_CASH = "NEGATIVE_CASH"
    UNKNOWN_TICKER = "UNKNOWN_TICKER"
    UNCLASSIFIED_EXPOSURE = "UNCLASSIFIED_EXPOSURE"
    ETF_LOOKTHROUGH_UNAVAILABLE = "ETF_LOOKTHROUGH_UNAVAILABLE"
    ETF_LOOKTHROUGH_STALE = "ETF_LOOKTHROUGH_STALE"


class DataWarning(BaseModel):
    """A data-quality issue observed while computing; never an error."""

    code: WarningCode
    message: str
    account_id: str | None = None
    instrument_id: str | None = None
    symbol: str


class Holding(BaseModel):
    """One row of a snapshot.  ``instrument_id`` is None for synthetic rows."""

    account_id: str
    instrument_id: str | None = None
    symbol: str
    kind: AssetKind
    quantity: float
    market_value: float
    portfolio_weight_pct: float = 0.0
    cost_basis: float
    unrealized_pnl: float = 0.0
    realized_pnl: float = 0.0


class SnapshotTotals(BaseModel):
    cash_value: float = 0.0
    market_value: float = 0.0
    total_value: float = 0.0
    realized_pnl: float = 0.0
    unrealized_pnl: float = 0.0


class ValuationSnapshot(BaseModel):
    as_of_date: date
    account_id: str | None = None
    totals: SnapshotTotals = Field(default_factory=SnapshotTotals)
    holdings: list[Holding] = Field(default_factory=list)
    warnings: list[DataWarning] = Field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """False when any open position had no usable price."""
        return not any(w.code == WarningCode.MISSING_PRICE for w in self.warnings)
