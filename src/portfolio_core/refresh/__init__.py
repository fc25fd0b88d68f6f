"""Guarded refresh runs: advisory lock, price ingestion, job records, alerts."""

from portfolio_core.refresh.alerts import (
    alert_report_for_config,
    build_refresh_alert_report,
    consecutive_failures,
)
from portfolio_core.refresh.coordinator import RefreshCoordinator, RefreshJobOutcome
from portfolio_core.refresh.jobs import (
    RefreshJobStore,
    SqlRefreshJobStore,
    normalize_page,
    parse_status,
    parse_trigger,
)
from portfolio_core.refresh.lock import AdvisoryLock, FileAdvisoryLock, PostgresAdvisoryLock
from portfolio_core.refresh.prices import MarketDataProvider, PolygonProvider, refresh_prices
from portfolio_core.refresh.status import get_refresh_status

__all__ = [
    "AdvisoryLock",
    "FileAdvisoryLock",
    "MarketDataProvider",
    "PolygonProvider",
    "PostgresAdvisoryLock",
    "RefreshCoordinator",
    "RefreshJobOutcome",
    "RefreshJobStore",
    "SqlRefreshJobStore",
    "alert_report_for_config",
    "build_refresh_alert_report",
    "consecutive_failures",
    "get_refresh_status",
    "normalize_page",
    "parse_status",
    "parse_trigger",
    "refresh_prices",
]
