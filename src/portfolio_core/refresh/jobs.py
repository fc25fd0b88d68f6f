"""Refresh job records: created RUNNING, finished exactly once."""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from portfolio_core.db.tables.ledger import utcnow
from portfolio_core.db.tables.valuation import RefreshJobRow
from portfolio_core.dates import as_utc
from portfolio_core.errors import DomainValidationError, JobStateError
from portfolio_core.models.refresh import JobStatus, JobTrigger, RefreshJob

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def normalize_page(limit: float | None = None, offset: float | None = None) -> tuple[int, int]:
    """Clamp *limit* to [1, 100] and *offset* to >= 0.

    Non-finite values are a caller error rather than something to clamp.
    """
    limit = DEFAULT_PAGE_SIZE if limit is None else limit
    offset = 0 if offset is None else offset
    if not math.isfinite(limit):
        raise DomainValidationError("Invalid limit")
    if not math.isfinite(offset):
        raise DomainValidationError("Invalid offset")
    return max(1, min(int(limit), MAX_PAGE_SIZE)), max(0, int(offset))


def parse_status(value: JobStatus | str | None) -> JobStatus | None:
    if value is None or isinstance(value, JobStatus):
        return value
    try:
        return JobStatus(value.strip().upper())
    except ValueError:
        raise DomainValidationError(f"Invalid status {value!r}") from None


def parse_trigger(value: JobTrigger | str | None) -> JobTrigger | None:
    if value is None or isinstance(value, JobTrigger):
        return value
    try:
        return JobTrigger(value.strip().upper())
    except ValueError:
        raise DomainValidationError(f"Invalid trigger {value!r}") from None


class RefreshJobStore(ABC):
    @abstractmethod
    def create(self, trigger: JobTrigger, input_echo: dict[str, Any] | None = None) -> RefreshJob:
        """Insert a RUNNING job stamped with the current time."""

    @abstractmethod
    def finish(
        self,
        job_id: int,
        status: JobStatus,
        result: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> RefreshJob:
        """Move a RUNNING job to a terminal status.

        Raises:
            JobStateError: unknown job, non-terminal *status*, or the job was
                already finished.
        """

    @abstractmethod
    def list(
        self,
        limit: float | None = DEFAULT_PAGE_SIZE,
        offset: float | None = 0,
        status: JobStatus | str | None = None,
        trigger: JobTrigger | str | None = None,
    ) -> list[RefreshJob]:
        """Newest first."""

    @abstractmethod
    def count(self, status: JobStatus | str | None = None, trigger: JobTrigger | str | None = None) -> int: ...

    @abstractmethod
    def list_started_since(self, since: datetime) -> list[RefreshJob]:
        """Jobs started at or after *since*, newest first."""

    @abstractmethod
    def latest(self, status: JobStatus) -> RefreshJob | None:
        """Most recently started job with *status*."""


def job_from_row(row: RefreshJobRow) -> RefreshJob:
    return RefreshJob(
        id=row.id,
        status=JobStatus(row.status),
        trigger=JobTrigger(row.trigger),
        started_at=as_utc(row.started_at),
        finished_at=as_utc(row.finished_at) if row.finished_at else None,
        input=row.input_json,
        result=row.result_json,
        error_message=row.error_message,
    )


class SqlRefreshJobStore(RefreshJobStore):
    """Job rows through *session*.

    Each write commits: a job record has to survive the rollback of the
    refresh it describes.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(self, trigger: JobTrigger, input_echo: dict[str, Any] | None = None) -> RefreshJob:
        row = RefreshJobRow(
            status=JobStatus.RUNNING.value,
            trigger=JobTrigger(trigger).value,
            started_at=utcnow(),
            input_json=input_echo,
        )
        self.session.add(row)
        self.session.commit()
        return job_from_row(row)

    def finish(
        self,
        job_id: int,
        status: JobStatus,
        result: dict[str, Any] | None = None,
        error_message: str | None = None,
    ) -> RefreshJob:
        status = JobStatus(status)
        if not status.is_terminal:
            raise JobStateError(f"{status.value} is not a terminal job status")
        row = self.session.get(RefreshJobRow, job_id)
        if row is None:
            raise JobStateError(f"Refresh job {job_id} does not exist")
        if row.status != JobStatus.RUNNING.value:
            raise JobStateError(f"Refresh job {job_id} already finished as {row.status}")
        row.status = status.value
        row.finished_at = utcnow()
        row.result_json = result
        row.error_message = error_message
        self.session.commit()
        return job_from_row(row)

    def _filtered(self, status: JobStatus | str | None, trigger: JobTrigger | str | None):
        q = self.session.query(RefreshJobRow)
        status = parse_status(status)
        trigger = parse_trigger(trigger)
        if status is not None:
            q = q.filter(RefreshJobRow.status == status.value)
        if trigger is not None:
            q = q.filter(RefreshJobRow.trigger == trigger.value)
        return q

    def list(
        self,
        limit: float | None = DEFAULT_PAGE_SIZE,
        offset: float | None = 0,
        status: JobStatus | str | None = None,
        trigger: JobTrigger | str | None = None,
    ) -> list[RefreshJob]:
        limit, offset = normalize_page(limit, offset)
        rows = (
            self._filtered(status, trigger)
            .order_by(desc(RefreshJobRow.started_at), desc(RefreshJobRow.id))
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [job_from_row(r) for r in rows]

    def count(self, status: JobStatus | str | None = None, trigger: JobTrigger | str | None = None) -> int:
        return self._filtered(status, trigger).with_entities(func.count(RefreshJobRow.id)).scalar() or 0

    def list_started_since(self, since: datetime) -> list[RefreshJob]:
        rows = (
            self.session.query(RefreshJobRow)
            .filter(RefreshJobRow.started_at >= since)
            .order_by(desc(RefreshJobRow.started_at), desc(RefreshJobRow.id))
            .all()
        )
        return [job_from_row(r) for r in rows]

    def latest(self, status: JobStatus) -> RefreshJob | None:
        row = (
            self.session.query(RefreshJobRow)
            .filter(RefreshJobRow.status == JobStatus(status).value)
            .order_by(desc(RefreshJobRow.started_at), desc(RefreshJobRow.id))
            .first()
        )
        return job_from_row(row) if row is not None else None
