"""Exposure engine: look-through and classification behind one object."""

from __future__ import annotations

from datetime import date

from portfolio_core.exposure.classification import build_classification_breakdown
from portfolio_core.exposure.lookthrough import apply_look_through
from portfolio_core.models.exposure import ClassificationResult, LookThroughResult
from portfolio_core.models.valuation import Holding
from portfolio_core.sources.base import ConstituentSource, InstrumentSource


class ExposureEngine:
    def __init__(
        self,
        constituents: ConstituentSource,
        instruments: InstrumentSource,
        unclassified_warning_pct: float = 1.0,
    ) -> None:
        self.constituents = constituents
        self.instruments = instruments
        self.unclassified_warning_pct = unclassified_warning_pct

    def apply_look_through(self, holdings: list[Holding], as_of: date) -> LookThroughResult:
        return apply_look_through(holdings, as_of, self.constituents)

    def build_classification_breakdown(self, holdings: list[Holding], total_value: float) -> ClassificationResult:
        return build_classification_breakdown(
            holdings,
            total_value,
            self.instruments,
            unclassified_warning_pct=self.unclassified_warning_pct,
        )
