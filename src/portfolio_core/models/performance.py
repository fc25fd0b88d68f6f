"""Performance metric models."""

from __future__ import annotations

from datetime import date
from enum import Enum

from pydantic import BaseModel


class PeriodType(str, Enum):
    SINCE_INCEPTION = "since_inception"
    YTD = "ytd"
    CUSTOM = "custom"


class PeriodBounds(BaseModel):
    type: PeriodType
    start_date: date
    end_date: date


class PerformanceMetrics(BaseModel):
    """Money-weighted (XIRR) and time-weighted returns for one period.

    ``mwr`` is None when the cash-flow series has no IRR.
    """

    period: PeriodBounds
    mwr: float | None
    twr: float | None
    start_value: float = 0.0
    end_value: float = 0.0
