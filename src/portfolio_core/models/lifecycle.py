"""Warning lifecycle ledger models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel

from portfolio_core.models.valuation import WarningCode


class OverviewMode(str, Enum):
    RAW = "raw"
    LOOKTHROUGH = "lookthrough"


class Severity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


class WarningObservation(BaseModel):
    """One warning as seen by a computation, ready to upsert by fingerprint."""

    fingerprint: str
    date: date
    code: WarningCode
    severity: Severity
    mode: OverviewMode
    account_id: str | None = None
    instrument_id: str | None = None
    symbol: str
    message: str


class WarningLedgerEntry(BaseModel):
    id: int
    fingerprint: str
    date: date
    first_seen_at: date
    last_seen_at: date
    resolved_at: date | None = None
    code: str
    severity: str
    mode: str
    account_id: str | None = None
    instrument_id: str | None = None
    symbol: str | None = None
    message: str | None = None

    @property
    def is_active(self) -> bool:
        return self.resolved_at is None


class ReconcileResult(BaseModel):
    upserted: int = 0
    resolved: int = 0
