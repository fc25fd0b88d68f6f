"""Refresh health report for schedulers and dashboards."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

from portfolio_core.config.schema import RefreshConfig
from portfolio_core.errors import DomainValidationError
from portfolio_core.models.refresh import (
    AlertLatest,
    AlertSignal,
    AlertTotals,
    JobStatus,
    RefreshAlertReport,
)
from portfolio_core.refresh.jobs import MAX_PAGE_SIZE, RefreshJobStore


def consecutive_failures(store: RefreshJobStore) -> int:
    """FAILED jobs since the newest SUCCEEDED one.

    RUNNING and SKIPPED_CONFLICT jobs neither extend nor break the streak.
    """
    count = 0
    offset = 0
    while True:
        page = store.list(limit=MAX_PAGE_SIZE, offset=offset)
        for job in page:
            if job.status is JobStatus.SUCCEEDED:
                return count
            if job.status is JobStatus.FAILED:
                count += 1
        if len(page) < MAX_PAGE_SIZE:
            return count
        offset += len(page)


def build_refresh_alert_report(
    store: RefreshJobStore,
    lookback_hours: float = 24,
    now: datetime | None = None,
    failure_threshold: int = 3,
) -> RefreshAlertReport:
    if not math.isfinite(lookback_hours) or lookback_hours <= 0:
        raise DomainValidationError("lookback_hours must be a positive number")
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(hours=lookback_hours)

    window = [j for j in store.list_started_since(since) if j.started_at <= now]
    totals = AlertTotals(
        jobs=len(window),
        succeeded=sum(1 for j in window if j.status is JobStatus.SUCCEEDED),
        failed=sum(1 for j in window if j.status is JobStatus.FAILED),
        skipped_conflict=sum(1 for j in window if j.status is JobStatus.SKIPPED_CONFLICT),
    )

    last_success = store.latest(JobStatus.SUCCEEDED)
    last_failure = store.latest(JobStatus.FAILED)
    latest = AlertLatest(
        last_success_at=(last_success.finished_at or last_success.started_at) if last_success else None,
        last_failure_at=(last_failure.finished_at or last_failure.started_at) if last_failure else None,
    )
    streak = consecutive_failures(store)

    reasons: list[str] = []
    if streak >= failure_threshold:
        reasons.append(f"{streak} consecutive refresh failures")
    if totals.jobs > 0 and totals.succeeded == 0:
        reasons.append(f"No successful refresh in the last {lookback_hours:g} hours")
    newest_finished = next((j for j in window if j.status.is_terminal), None)
    if newest_finished is not None and newest_finished.status is JobStatus.FAILED:
        reasons.append("Most recent refresh failed")

    return RefreshAlertReport(
        lookback_hours=lookback_hours,
        totals=totals,
        latest=latest,
        consecutive_failure_count=streak,
        alert=AlertSignal(should_warn=bool(reasons), reasons=reasons),
    )


def alert_report_for_config(
    store: RefreshJobStore,
    config: RefreshConfig,
    now: datetime | None = None,
) -> RefreshAlertReport:
    """Alert report using the configured lookback window and failure threshold."""
    return build_refresh_alert_report(
        store,
        lookback_hours=config.alert_lookback_hours,
        now=now,
        failure_threshold=config.alert_consecutive_failures,
    )
