"""Refresh job, refresh run result and alert report models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class JobStatus(str, Enum):
    RUNNING = "RUNNING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"
    SKIPPED_CONFLICT = "SKIPPED_CONFLICT"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.RUNNING


class JobTrigger(str, Enum):
    MANUAL = "MANUAL"
    SCHEDULED = "SCHEDULED"


class RefreshInput(BaseModel):
    """Scope of one refresh run: optional account, date range and symbols."""

    account_id: str | None = None
    from_date: date | None = None
    to_date: date | None = None
    symbols: list[str] | None = None

    @field_validator("account_id")
    @classmethod
    def _strip_account(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("account_id must not be blank")
        return v

    @field_validator("symbols")
    @classmethod
    def _normalise_symbols(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        cleaned = [s.strip().upper() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("symbols must not contain blank entries")
        return cleaned

    @model_validator(mode="after")
    def _check_range(self) -> RefreshInput:
        if self.from_date and self.to_date and self.from_date > self.to_date:
            raise ValueError("from_date must be <= to_date")
        return self


class PriceRefreshResult(BaseModel):
    requested_symbols: list[str] = Field(default_factory=list)
    processed_symbols: list[str] = Field(default_factory=list)
    missing_symbols: list[str] = Field(default_factory=list)
    points_upserted: int = 0


class ValuationRecomputeResult(BaseModel):
    from_date: date
    to_date: date
    dates_processed: int = 0
    rows_upserted: int = 0
    portfolio_rows_upserted: int = 0
    account_rows_upserted: int = 0


class RefreshFreshness(BaseModel):
    last_price_fetched_at: datetime | None = None
    last_valuation_materialized_at: datetime | None = None
    last_valuation_date: date | None = None


class RefreshRunResult(BaseModel):
    price: PriceRefreshResult
    valuation: ValuationRecomputeResult
    status: RefreshFreshness


class RefreshJob(BaseModel):
    id: int
    status: JobStatus
    trigger: JobTrigger
    started_at: datetime
    finished_at: datetime | None = None
    input: dict[str, Any] | None = None
    result: dict[str, Any] | None = None
    error_message: str | None = None


class AlertTotals(BaseModel):
    jobs: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_conflict: int = 0


class AlertLatest(BaseModel):
    last_success_at: datetime | None = None
    last_failure_at: datetime | None = None


class AlertSignal(BaseModel):
    should_warn: bool = False
    reasons: list[str] = Field(default_factory=list)


class RefreshAlertReport(BaseModel):
    lookback_hours: float
    totals: AlertTotals = Field(default_factory=AlertTotals)
    latest: AlertLatest = Field(default_factory=AlertLatest)
    consecutive_failure_count: int = 0
    alert: AlertSignal = Field(default_factory=AlertSignal)
