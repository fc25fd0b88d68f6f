"""Guarded refresh: price ingestion then valuation materialization as one unit."""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.orm import Session

from portfolio_core.errors import ConcurrencyConflictError
from portfolio_core.logging import log_context
from portfolio_core.models.refresh import JobStatus, JobTrigger, RefreshInput, RefreshRunResult
from portfolio_core.refresh.jobs import RefreshJobStore, SqlRefreshJobStore
from portfolio_core.refresh.lock import AdvisoryLock
from portfolio_core.refresh.prices import MarketDataProvider, refresh_prices
from portfolio_core.refresh.status import get_refresh_status
from portfolio_core.valuation.materialize import recompute_daily_valuations
from portfolio_core.valuation.snapshot import ValuationEngine

log = structlog.get_logger("refresh")


@dataclass(frozen=True)
class RefreshJobOutcome:
    job_id: int
    result: RefreshRunResult


class RefreshCoordinator:
    """Runs at most one refresh system-wide, serialized through *lock*.

    *valuation* must read through *session* so materialization sees the
    prices written earlier in the same run.
    """

    def __init__(
        self,
        session: Session,
        lock: AdvisoryLock,
        provider: MarketDataProvider,
        valuation: ValuationEngine,
        jobs: RefreshJobStore | None = None,
        price_source: str = "polygon",
    ) -> None:
        self.session = session
        self.lock = lock
        self.provider = provider
        self.valuation = valuation
        self.jobs = jobs or SqlRefreshJobStore(session)
        self.price_source = price_source

    def run_refresh(self, payload: RefreshInput) -> RefreshRunResult:
        """Refresh prices and rematerialize valuations under the lock.

        Raises:
            ConcurrencyConflictError: another refresh holds the lock; nothing
                was touched.
        """
        with self.lock.hold():
            log.info(
                "refresh_started",
                account_id=payload.account_id,
                from_date=payload.from_date.isoformat() if payload.from_date else None,
                to_date=payload.to_date.isoformat() if payload.to_date else None,
            )
            try:
                price = refresh_prices(
                    self.session,
                    self.provider,
                    symbols=payload.symbols,
                    from_date=payload.from_date,
                    to_date=payload.to_date,
                    source=self.price_source,
                )
                if self.valuation.cache is not None:
                    self.valuation.cache.clear()
                valuation = recompute_daily_valuations(
                    self.session,
                    self.valuation,
                    account_id=payload.account_id,
                    from_date=payload.from_date,
                    to_date=payload.to_date,
                )
                self.session.commit()
            except Exception:
                self.session.rollback()
                # snapshots cached during the run were priced from rolled-back rows
                if self.valuation.cache is not None:
                    self.valuation.cache.clear()
                raise
            status = get_refresh_status(self.session)

        log.info(
            "refresh_completed",
            points_upserted=price.points_upserted,
            rows_upserted=valuation.rows_upserted,
        )
        return RefreshRunResult(price=price, valuation=valuation, status=status)

    def run_refresh_job(
        self,
        payload: RefreshInput,
        trigger: JobTrigger = JobTrigger.MANUAL,
    ) -> RefreshJobOutcome:
        """Record the run as a job row and finish that row exactly once.

        Lock conflicts finish the job as SKIPPED_CONFLICT and other errors as
        FAILED; both are re-raised after the row is written.
        """
        job = self.jobs.create(JobTrigger(trigger), payload.model_dump(mode="json"))
        with log_context(job_id=job.id, trigger=job.trigger.value):
            try:
                result = self.run_refresh(payload)
            except ConcurrencyConflictError as exc:
                log.warning("refresh_conflict")
                self.jobs.finish(job.id, JobStatus.SKIPPED_CONFLICT, error_message=str(exc))
                raise
            except Exception as exc:
                log.error("refresh_failed", error=str(exc), exc_info=True)
                self.session.rollback()
                self.jobs.finish(job.id, JobStatus.FAILED, error_message=str(exc) or type(exc).__name__)
                raise
            self.jobs.finish(job.id, JobStatus.SUCCEEDED, result=result.model_dump(mode="json"))
        return RefreshJobOutcome(job_id=job.id, result=result)
