"""Overview composition over explicitly injected engines."""

from portfolio_core.overview.engines import PortfolioEngines, build_default_engines
from portfolio_core.overview.service import get_overview, holding_currency, normalize_filters

__all__ = [
    "PortfolioEngines",
    "build_default_engines",
    "get_overview",
    "holding_currency",
    "normalize_filters",
]
