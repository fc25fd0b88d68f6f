"""ETF look-through, classification breakdown and constituent ingestion."""

from portfolio_core.exposure.classification import UNCLASSIFIED, build_classification_breakdown
from portfolio_core.exposure.engine import ExposureEngine
from portfolio_core.exposure.ingest import ingest_etf_constituents
from portfolio_core.exposure.lookthrough import UNMAPPED_SYMBOL, apply_look_through, normalize_weights

__all__ = [
    "UNCLASSIFIED",
    "UNMAPPED_SYMBOL",
    "ExposureEngine",
    "apply_look_through",
    "build_classification_breakdown",
    "ingest_etf_constituents",
    "normalize_weights",
]
