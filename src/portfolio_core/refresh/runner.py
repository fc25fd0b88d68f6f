"""Scheduled refresh entry point: one SCHEDULED job per invocation."""

from __future__ import annotations

from sqlalchemy import Engine

import structlog

from portfolio_core.config.loader import load_config
from portfolio_core.config.schema import AppConfig
from portfolio_core.db.engine import init_engine, session_scope
from portfolio_core.errors import ConcurrencyConflictError
from portfolio_core.logging.setup import setup_logging
from portfolio_core.models.refresh import JobTrigger, RefreshInput
from portfolio_core.overview.engines import build_default_engines
from portfolio_core.refresh.alerts import alert_report_for_config
from portfolio_core.refresh.coordinator import RefreshCoordinator, RefreshJobOutcome
from portfolio_core.refresh.jobs import SqlRefreshJobStore
from portfolio_core.refresh.lock import AdvisoryLock, FileAdvisoryLock, PostgresAdvisoryLock
from portfolio_core.refresh.prices import PolygonProvider
from portfolio_core.valuation.cache import SnapshotCache

log = structlog.get_logger("refresh_runner")

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_ALERT = 2
EXIT_CONFLICT = 3


def build_lock(config: AppConfig, engine: Engine) -> AdvisoryLock:
    if config.refresh.lock_backend == "file":
        return FileAdvisoryLock(config.refresh.lock_path)
    return PostgresAdvisoryLock(engine, key=config.refresh.lock_key)


def run_scheduled(config: AppConfig, payload: RefreshInput) -> RefreshJobOutcome:
    """Run one SCHEDULED refresh job against the configured database."""
    engine = init_engine(config.database.url)
    provider = PolygonProvider(
        config.market_data.api_key,
        base_url=config.market_data.base_url,
        timeout=config.market_data.timeout_seconds,
    )
    try:
        with session_scope() as session:
            engines = build_default_engines(session, config, cache=SnapshotCache())
            coordinator = RefreshCoordinator(
                session,
                build_lock(config, engine),
                provider,
                engines.valuation,
                price_source=config.refresh.price_source,
            )
            return coordinator.run_refresh_job(payload, JobTrigger.SCHEDULED)
    finally:
        provider.close()


def main(
    config_path: str | None = None,
    from_date: str | None = None,
    to_date: str | None = None,
    account_id: str | None = None,
    symbols: str | None = None,
) -> int:
    """Entry point: load config, set up logging, run one job; return an exit code."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    try:
        payload = RefreshInput(
            account_id=account_id,
            from_date=from_date,
            to_date=to_date,
            symbols=symbols.split(",") if symbols else None,
        )
        outcome = run_scheduled(config, payload)
    except ConcurrencyConflictError:
        return EXIT_CONFLICT
    except Exception:
        log.exception("scheduled_refresh_failed")
        return EXIT_FAILED
    log.info("scheduled_refresh_succeeded", job_id=outcome.job_id)
    return EXIT_OK


def check_alerts(config_path: str | None = None) -> int:
    """Log the refresh alert report; EXIT_ALERT when it asks for attention."""
    config = load_config(config_path)
    setup_logging(level=config.logging.level, log_format=config.logging.format)
    init_engine(config.database.url)
    with session_scope() as session:
        report = alert_report_for_config(SqlRefreshJobStore(session), config.refresh)
    log.info(
        "refresh_alert_report",
        should_warn=report.alert.should_warn,
        reasons=report.alert.reasons,
        consecutive_failures=report.consecutive_failure_count,
        jobs=report.totals.jobs,
    )
    return EXIT_ALERT if report.alert.should_warn else EXIT_OK
