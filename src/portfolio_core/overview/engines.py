"""Engine wiring: explicit dependencies instead of module-level singletons."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from portfolio_core.config.schema import AppConfig
from portfolio_core.exposure.engine import ExposureEngine
from portfolio_core.performance.engine import PerformanceEngine
from portfolio_core.sources.sql import (
    SqlConstituentSource,
    SqlInstrumentSource,
    SqlPriceSource,
    SqlTransactionSource,
)
from portfolio_core.valuation.cache import SnapshotCache
from portfolio_core.valuation.snapshot import ValuationEngine


@dataclass
class PortfolioEngines:
    valuation: ValuationEngine
    performance: PerformanceEngine
    exposure: ExposureEngine


def build_default_engines(
    session: Session,
    config: AppConfig | None = None,
    cache: SnapshotCache | None = None,
) -> PortfolioEngines:
    """SQL-backed engines reading through *session*.

    Pass a *cache* to share snapshots across calls; it must be cleared
    whenever the ledger or prices change underneath it.
    """
    config = config or AppConfig()
    transactions = SqlTransactionSource(session)
    instruments = SqlInstrumentSource(session)
    valuation = ValuationEngine(transactions, SqlPriceSource(session), instruments, cache=cache)
    return PortfolioEngines(
        valuation=valuation,
        performance=PerformanceEngine(valuation, transactions),
        exposure=ExposureEngine(
            SqlConstituentSource(session),
            instruments,
            unclassified_warning_pct=config.exposure.unclassified_warning_pct,
        ),
    )
