"""Look-through and classification breakdown models."""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from portfolio_core.models.valuation import DataWarning, Holding


class StalenessEntry(BaseModel):
    etf_symbol: str
    as_of_date: date | None = None


class LookThroughMeta(BaseModel):
    coverage_pct: float
    total_etf_value: float
    covered_etf_value: float
    uncovered_etf_value: float
    staleness: list[StalenessEntry] = Field(default_factory=list)


class LookThroughResult(BaseModel):
    holdings: list[Holding]
    warnings: list[DataWarning] = Field(default_factory=list)
    meta: LookThroughMeta


class ExposureBucket(BaseModel):
    key: str
    market_value: float
    portfolio_weight_pct: float


class ClassificationSummary(BaseModel):
    classified_value: float = 0.0
    unclassified_value: float = 0.0
    classified_pct: float = 0.0
    unclassified_pct: float = 0.0


class ClassificationSummaries(BaseModel):
    country: ClassificationSummary = Field(default_factory=ClassificationSummary)
    sector: ClassificationSummary = Field(default_factory=ClassificationSummary)
    industry: ClassificationSummary = Field(default_factory=ClassificationSummary)
    currency: ClassificationSummary = Field(default_factory=ClassificationSummary)


class ClassificationBreakdown(BaseModel):
    by_country: list[ExposureBucket] = Field(default_factory=list)
    by_sector: list[ExposureBucket] = Field(default_factory=list)
    by_industry: list[ExposureBucket] = Field(default_factory=list)
    by_currency: list[ExposureBucket] = Field(default_factory=list)
    summaries: ClassificationSummaries = Field(default_factory=ClassificationSummaries)


class ClassificationResult(BaseModel):
    classifications: ClassificationBreakdown
    warnings: list[DataWarning] = Field(default_factory=list)
