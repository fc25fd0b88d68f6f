"""ETF look-through: reallocate ETF holdings into their constituents."""

from __future__ import annotations

from datetime import date

import structlog

from portfolio_core.ledger.replay import EPSILON
from portfolio_core.models.exposure import LookThroughMeta, LookThroughResult, StalenessEntry
from portfolio_core.models.valuation import AssetKind, DataWarning, Holding, WarningCode
from portfolio_core.sources.base import ConstituentSource
from portfolio_core.valuation.snapshot import apply_weights

log = structlog.get_logger("lookthrough")

UNMAPPED_SYMBOL = "UNMAPPED_ETF_EXPOSURE"

HoldingKey = tuple[str, str, AssetKind]


def normalize_weights(weights: dict[str, float]) -> dict[str, float]:
    """Positive weights as fractions.

    Weights summing to more than 1 are taken as percentages (or unnormalized)
    and scaled to sum to 1; otherwise they are already fractions and any
    shortfall stays uncovered.
    """
    positive = {symbol.upper(): w for symbol, w in weights.items() if w > 0}
    total = sum(positive.values(), 0.0)
    if total > 1:
        return {symbol: w / total for symbol, w in positive.items()}
    return positive


def _scaled(holding: Holding, fraction: float, **update) -> Holding:
    return holding.model_copy(
        update={
            "market_value": holding.market_value * fraction,
            "cost_basis": holding.cost_basis * fraction,
            "unrealized_pnl": holding.unrealized_pnl * fraction,
            "realized_pnl": holding.realized_pnl * fraction,
            **update,
        }
    )


def _merge(merged: dict[HoldingKey, Holding], row: Holding) -> None:
    key = (row.account_id, row.symbol.upper(), row.kind)
    existing = merged.get(key)
    if existing is None:
        merged[key] = row
        return
    merged[key] = existing.model_copy(
        update={
            "quantity": existing.quantity + row.quantity,
            "market_value": existing.market_value + row.market_value,
            "cost_basis": existing.cost_basis + row.cost_basis,
            "unrealized_pnl": existing.unrealized_pnl + row.unrealized_pnl,
            "realized_pnl": existing.realized_pnl + row.realized_pnl,
        }
    )


def apply_look_through(
    holdings: list[Holding],
    as_of: date,
    constituents: ConstituentSource,
) -> LookThroughResult:
    """Replace ETF rows with constituent rows plus per-account unmapped buckets.

    ETF value with no usable dataset, or not covered by the weights, lands in
    an ``UNMAPPED_ETF_EXPOSURE`` row for the owning account.
    """
    merged: dict[HoldingKey, Holding] = {}
    etf_rows: list[Holding] = []
    for h in holdings:
        if h.kind is AssetKind.ETF and h.instrument_id:
            etf_rows.append(h)
        else:
            _merge(merged, h)

    warnings: list[DataWarning] = []
    staleness: dict[str, StalenessEntry] = {}
    uncovered_by_account: dict[str, Holding] = {}
    total_etf_value = 0.0
    covered_etf_value = 0.0

    for etf in etf_rows:
        total_etf_value += etf.market_value
        dataset = constituents.latest_constituents(etf.instrument_id, as_of)
        weights = normalize_weights(dataset.weights) if dataset is not None else {}
        staleness.setdefault(
            etf.symbol,
            StalenessEntry(etf_symbol=etf.symbol, as_of_date=dataset.as_of_date if dataset else None),
        )

        if not weights:
            warnings.append(
                DataWarning(
                    code=WarningCode.ETF_LOOKTHROUGH_UNAVAILABLE,
                    message=f"No constituent data for {etf.symbol} on or before {as_of.isoformat()}",
                    account_id=etf.account_id,
                    instrument_id=etf.instrument_id,
                    symbol=etf.symbol,
                )
            )
            covered_fraction = 0.0
        else:
            if dataset.as_of_date != as_of:
                warnings.append(
                    DataWarning(
                        code=WarningCode.ETF_LOOKTHROUGH_STALE,
                        message=(
                            f"Using constituent data for {etf.symbol} "
                            f"from {dataset.as_of_date.isoformat()}"
                        ),
                        account_id=etf.account_id,
                        instrument_id=etf.instrument_id,
                        symbol=etf.symbol,
                    )
                )
            for symbol, weight in weights.items():
                _merge(
                    merged,
                    _scaled(
                        etf,
                        weight,
                        instrument_id=None,
                        symbol=symbol,
                        kind=AssetKind.STOCK,
                        quantity=0.0,
                    ),
                )
            covered_fraction = min(sum(weights.values(), 0.0), 1.0)

        covered_etf_value += etf.market_value * covered_fraction
        shortfall = 1.0 - covered_fraction
        if shortfall > EPSILON:
            row = _scaled(
                etf,
                shortfall,
                instrument_id=None,
                symbol=UNMAPPED_SYMBOL,
                kind=AssetKind.CUSTOM,
                quantity=0.0,
            )
            prior = uncovered_by_account.get(etf.account_id)
            if prior is not None:
                row = row.model_copy(
                    update={
                        "market_value": prior.market_value + row.market_value,
                        "cost_basis": prior.cost_basis + row.cost_basis,
                        "unrealized_pnl": prior.unrealized_pnl + row.unrealized_pnl,
                        "realized_pnl": prior.realized_pnl + row.realized_pnl,
                    }
                )
            uncovered_by_account[etf.account_id] = row

    for row in uncovered_by_account.values():
        _merge(merged, row)

    flattened = list(merged.values())
    flattened = apply_weights(flattened, sum(h.market_value for h in flattened))
    flattened.sort(key=lambda h: h.market_value, reverse=True)

    uncovered_etf_value = total_etf_value - covered_etf_value
    coverage_pct = 100.0 if abs(total_etf_value) <= EPSILON else covered_etf_value / total_etf_value * 100

    log.debug(
        "lookthrough_applied",
        etf_holdings=len(etf_rows),
        coverage_pct=coverage_pct,
        warnings=len(warnings),
    )
    return LookThroughResult(
        holdings=flattened,
        warnings=warnings,
        meta=LookThroughMeta(
            coverage_pct=coverage_pct,
            total_etf_value=total_etf_value,
            covered_etf_value=covered_etf_value,
            uncovered_etf_value=uncovered_etf_value,
            staleness=list(staleness.values()),
        ),
    )
