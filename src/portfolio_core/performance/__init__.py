"""Performance metrics: XIRR money-weighted and chained time-weighted returns."""

from portfolio_core.performance.engine import PerformanceEngine
from portfolio_core.performance.xirr import CashFlow, dxnpv, solve_xirr, xnpv

__all__ = ["CashFlow", "PerformanceEngine", "dxnpv", "solve_xirr", "xnpv"]
