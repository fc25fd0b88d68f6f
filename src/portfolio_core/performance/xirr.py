"""XIRR solver: pure functions, no DB.

Newton-Raphson seeded at 10%, falling back to bisection over a wide bracket.
The iteration caps and tolerances are fixed constants; results must not
depend on anything else.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date

import numpy as np

NEWTON_SEED = 0.1
NEWTON_MAX_ITER = 100
NEWTON_STEP_TOL = 1e-10
DERIVATIVE_FLOOR = 1e-12

BISECT_LOW = -0.9999
BISECT_HIGH = 1e18
BISECT_MAX_ITER = 200
BISECT_RESIDUAL_TOL = 1e-9
BISECT_WIDTH_TOL = 1e-10

DAYS_PER_YEAR = 365.0


@dataclass(frozen=True)
class CashFlow:
    date: date
    amount: float


def _year_fractions(flows: Sequence[CashFlow]) -> np.ndarray:
    t0 = flows[0].date
    return np.array([(f.date - t0).days / DAYS_PER_YEAR for f in flows], dtype=np.float64)


def _amounts(flows: Sequence[CashFlow]) -> np.ndarray:
    return np.array([f.amount for f in flows], dtype=np.float64)


def xnpv(rate: float, flows: Sequence[CashFlow]) -> float:
    """Net present value at *rate*, discounting to the first flow's date.

    Discount factors that overflow become infinite, so their flow vanishes.
    """
    yf = _year_fractions(flows)
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        factors = np.power(1.0 + rate, yf)
        return float(np.sum(_amounts(flows) / factors))


def dxnpv(rate: float, flows: Sequence[CashFlow]) -> float:
    """Derivative of :func:`xnpv` with respect to *rate*."""
    yf = _year_fractions(flows)
    amounts = _amounts(flows)
    mask = yf != 0
    with np.errstate(over="ignore", divide="ignore", invalid="ignore"):
        terms = yf[mask] * amounts[mask] / np.power(1.0 + rate, yf[mask] + 1.0)
        return float(-np.sum(terms))


def _newton(flows: Sequence[CashFlow]) -> float | None:
    rate = NEWTON_SEED
    for _ in range(NEWTON_MAX_ITER):
        f = xnpv(rate, flows)
        df = dxnpv(rate, flows)
        if abs(df) < DERIVATIVE_FLOOR:
            return None
        nxt = rate - f / df
        if not math.isfinite(nxt) or nxt <= BISECT_LOW or nxt > BISECT_HIGH:
            return None
        if abs(nxt - rate) < NEWTON_STEP_TOL:
            return nxt
        rate = nxt
    return None


def _bisect(flows: Sequence[CashFlow]) -> float | None:
    lo, hi = BISECT_LOW, BISECT_HIGH
    f_lo = xnpv(lo, flows)
    f_hi = xnpv(hi, flows)
    if f_lo * f_hi > 0:
        return None
    for _ in range(BISECT_MAX_ITER):
        mid = (lo + hi) / 2
        f_mid = xnpv(mid, flows)
        if abs(f_mid) < BISECT_RESIDUAL_TOL:
            return mid
        if f_lo * f_mid <= 0:
            hi = mid
        else:
            lo, f_lo = mid, f_mid
        if abs(hi - lo) < BISECT_WIDTH_TOL:
            return (lo + hi) / 2
    return None


def solve_xirr(flows: Sequence[CashFlow]) -> float | None:
    """Annualised internal rate of return of *flows*, or None if undefined.

    Undefined means the series lacks either a positive or a negative flow,
    or neither Newton nor bisection finds a root.
    """
    if not flows:
        return None
    if not any(f.amount > 0 for f in flows) or not any(f.amount < 0 for f in flows):
        return None
    rate = _newton(flows)
    if rate is not None:
        return rate
    return _bisect(flows)
