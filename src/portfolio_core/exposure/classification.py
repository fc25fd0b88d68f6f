"""Country / sector / industry / currency breakdown of a holding set."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from portfolio_core.exposure.lookthrough import UNMAPPED_SYMBOL
from portfolio_core.ledger.replay import EPSILON
from portfolio_core.models.exposure import (
    ClassificationBreakdown,
    ClassificationResult,
    ClassificationSummaries,
    ClassificationSummary,
    ExposureBucket,
)
from portfolio_core.models.market import InstrumentInfo
from portfolio_core.models.valuation import AssetKind, DataWarning, Holding, WarningCode
from portfolio_core.sources.base import InstrumentSource
from portfolio_core.valuation.snapshot import weight_denominator

log = structlog.get_logger("classification")

UNCLASSIFIED = "UNCLASSIFIED"
CASH_CURRENCY = "USD"
DIMENSIONS = ("country", "sector", "industry", "currency")


@dataclass(frozen=True)
class HoldingClassification:
    country: str = UNCLASSIFIED
    sector: str = UNCLASSIFIED
    industry: str = UNCLASSIFIED
    currency: str = UNCLASSIFIED


CASH_CLASSIFICATION = HoldingClassification(currency=CASH_CURRENCY)


def classify(info: InstrumentInfo | None) -> HoldingClassification:
    if info is None:
        return HoldingClassification()
    return HoldingClassification(
        country=info.country or UNCLASSIFIED,
        sector=info.sector or UNCLASSIFIED,
        industry=info.industry or UNCLASSIFIED,
        currency=info.currency.upper() if info.currency else UNCLASSIFIED,
    )


def resolve_instruments(
    holdings: list[Holding],
    instruments: InstrumentSource,
) -> list[InstrumentInfo | None]:
    """Metadata per holding: by instrument id first, then by symbol.

    CASH and unmapped look-through rows always resolve to None.
    """
    by_id = instruments.get_by_ids(h.instrument_id for h in holdings if h.instrument_id)
    fallback_symbols = {
        h.symbol.upper()
        for h in holdings
        if not _is_synthetic(h) and (not h.instrument_id or h.instrument_id not in by_id)
    }
    by_symbol = instruments.get_by_symbols(fallback_symbols) if fallback_symbols else {}

    resolved: list[InstrumentInfo | None] = []
    for h in holdings:
        if _is_synthetic(h):
            resolved.append(None)
            continue
        info = by_id.get(h.instrument_id) if h.instrument_id else None
        resolved.append(info or by_symbol.get(h.symbol.upper()))
    return resolved


def _is_synthetic(holding: Holding) -> bool:
    return holding.kind is AssetKind.CASH or holding.symbol == UNMAPPED_SYMBOL


def classification_for(holding: Holding, info: InstrumentInfo | None) -> HoldingClassification:
    if holding.kind is AssetKind.CASH:
        return CASH_CLASSIFICATION
    return classify(info)


def _buckets(values: dict[str, float], denominator: float) -> list[ExposureBucket]:
    rows = [
        ExposureBucket(key=key, market_value=mv, portfolio_weight_pct=mv / denominator * 100)
        for key, mv in values.items()
    ]
    rows.sort(key=lambda b: (-b.market_value, b.key))
    return rows


def _summary(classified: float, unclassified: float) -> ClassificationSummary:
    gross = classified + unclassified
    if gross <= EPSILON:
        return ClassificationSummary(classified_value=classified, unclassified_value=unclassified)
    return ClassificationSummary(
        classified_value=classified,
        unclassified_value=unclassified,
        classified_pct=classified / gross * 100,
        unclassified_pct=unclassified / gross * 100,
    )


def build_classification_breakdown(
    holdings: list[Holding],
    total_value: float,
    instruments: InstrumentSource,
    unclassified_warning_pct: float = 1.0,
) -> ClassificationResult:
    """Bucket *holdings* per dimension and summarise classification coverage.

    Bucket weights are against *total_value*; coverage percentages are against
    the gross (absolute) holding value so offsetting rows cannot hide
    unclassified mass.
    """
    infos = resolve_instruments(holdings, instruments)
    denominator = weight_denominator(total_value)

    values: dict[str, dict[str, float]] = {dim: {} for dim in DIMENSIONS}
    classified = dict.fromkeys(DIMENSIONS, 0.0)
    unclassified = dict.fromkeys(DIMENSIONS, 0.0)
    warnings: list[DataWarning] = []
    unknown_symbols: set[str] = set()

    for holding, info in zip(holdings, infos):
        if info is None and not _is_synthetic(holding):
            symbol = holding.symbol.upper()
            if symbol not in unknown_symbols:
                unknown_symbols.add(symbol)
                warnings.append(
                    DataWarning(
                        code=WarningCode.UNKNOWN_TICKER,
                        message=f"No instrument metadata for {holding.symbol}",
                        account_id=holding.account_id,
                        instrument_id=holding.instrument_id,
                        symbol=holding.symbol,
                    )
                )

        labels = classification_for(holding, info)
        magnitude = abs(holding.market_value)
        for dim in DIMENSIONS:
            key = getattr(labels, dim)
            bucket = values[dim]
            bucket[key] = bucket.get(key, 0.0) + holding.market_value
            if key == UNCLASSIFIED:
                unclassified[dim] += magnitude
            else:
                classified[dim] += magnitude

    summaries = ClassificationSummaries(
        **{dim: _summary(classified[dim], unclassified[dim]) for dim in DIMENSIONS}
    )
    for dim in DIMENSIONS:
        summary = getattr(summaries, dim)
        if summary.unclassified_value > EPSILON and summary.unclassified_pct >= unclassified_warning_pct:
            warnings.append(
                DataWarning(
                    code=WarningCode.UNCLASSIFIED_EXPOSURE,
                    message=f"{summary.unclassified_pct:.2f}% of exposure has no {dim} classification",
                    symbol=dim.upper(),
                )
            )

    log.debug(
        "classification_built",
        holdings=len(holdings),
        unknown_tickers=len(unknown_symbols),
        warnings=len(warnings),
    )
    return ClassificationResult(
        classifications=ClassificationBreakdown(
            by_country=_buckets(values["country"], denominator),
            by_sector=_buckets(values["sector"], denominator),
            by_industry=_buckets(values["industry"], denominator),
            by_currency=_buckets(values["currency"], denominator),
            summaries=summaries,
        ),
        warnings=warnings,
    )
