"""Point-in-time valuation snapshots and their daily materialization."""

from portfolio_core.valuation.cache import SnapshotCache
from portfolio_core.valuation.materialize import list_daily_valuations, recompute_daily_valuations
from portfolio_core.valuation.snapshot import (
    ValuationEngine,
    apply_weights,
    build_valuation_snapshot,
    weight_denominator,
)

__all__ = [
    "SnapshotCache",
    "ValuationEngine",
    "apply_weights",
    "build_valuation_snapshot",
    "list_daily_valuations",
    "recompute_daily_valuations",
    "weight_denominator",
]
