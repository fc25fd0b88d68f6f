"""Point-in-time valuation: replay output + prices -> holdings, totals, warnings."""

from __future__ import annotations

from datetime import date

import structlog

from portfolio_core.dates import utc_today
from portfolio_core.ledger.ordering import sort_for_replay
from portfolio_core.ledger.replay import EPSILON, ReplayOutput, replay_transactions
from portfolio_core.models.valuation import (
    AssetKind,
    DataWarning,
    Holding,
    SnapshotTotals,
    ValuationSnapshot,
    WarningCode,
)
from portfolio_core.sources.base import InstrumentSource, PriceSource, TransactionSource
from portfolio_core.valuation.cache import SnapshotCache

log = structlog.get_logger("valuation")

CASH_SYMBOL = "CASH"


def weight_denominator(total_value: float) -> float:
    """Total value, or 1 when it is too close to zero to divide by."""
    return 1.0 if abs(total_value) <= EPSILON else total_value


def apply_weights(holdings: list[Holding], total_value: float) -> list[Holding]:
    """Return copies of *holdings* with weights recomputed against *total_value*."""
    denominator = weight_denominator(total_value)
    return [
        h.model_copy(update={"portfolio_weight_pct": h.market_value / denominator * 100})
        for h in holdings
    ]


def build_valuation_snapshot(
    replay: ReplayOutput,
    as_of: date,
    prices: PriceSource,
    instruments: InstrumentSource,
    account_id: str | None = None,
) -> ValuationSnapshot:
    """Price every open position in *replay* as of *as_of*.

    Missing prices value a position at zero and stale prices are still used;
    both surface as warnings instead of failing the snapshot.  Positions whose
    instrument cannot be resolved are left out.
    """
    info_by_id = instruments.get_by_ids(p.instrument_id for p in replay.positions)
    warnings: list[DataWarning] = []
    holdings: list[Holding] = []
    market_value = 0.0
    unrealized_pnl = 0.0

    for position in replay.positions:
        info = info_by_id.get(position.instrument_id)
        if info is None:
            log.debug("snapshot_position_unresolved", instrument_id=position.instrument_id)
            continue

        price = 0.0
        quote = prices.latest_close(position.instrument_id, as_of)
        if quote is None:
            warnings.append(
                DataWarning(
                    code=WarningCode.MISSING_PRICE,
                    message=f"Missing price for {info.symbol} on or before {as_of.isoformat()}",
                    account_id=position.account_id,
                    instrument_id=info.id,
                    symbol=info.symbol,
                )
            )
        else:
            price = quote.close
            if quote.date != as_of:
                warnings.append(
                    DataWarning(
                        code=WarningCode.STALE_PRICE_FALLBACK,
                        message=f"Using stale price for {info.symbol} from {quote.date.isoformat()}",
                        account_id=position.account_id,
                        instrument_id=info.id,
                        symbol=info.symbol,
                    )
                )

        position_value = position.quantity * price
        position_unrealized = position_value - position.cost_basis
        market_value += position_value
        unrealized_pnl += position_unrealized
        holdings.append(
            Holding(
                account_id=position.account_id,
                instrument_id=position.instrument_id,
                symbol=info.symbol,
                kind=AssetKind(info.kind),
                quantity=position.quantity,
                market_value=position_value,
                cost_basis=position.cost_basis,
                unrealized_pnl=position_unrealized,
                realized_pnl=position.realized_pnl,
            )
        )

    cash_value = sum(replay.cash_by_account.values(), 0.0)
    total_value = cash_value + market_value

    for cash_account, cash in replay.cash_by_account.items():
        if abs(cash) <= EPSILON:
            continue
        if cash < -EPSILON:
            warnings.append(
                DataWarning(
                    code=WarningCode.NEGATIVE_CASH,
                    message=f"Negative cash balance in account {cash_account}",
                    account_id=cash_account,
                    instrument_id=None,
                    symbol=CASH_SYMBOL,
                )
            )
        holdings.append(
            Holding(
                account_id=cash_account,
                instrument_id=None,
                symbol=CASH_SYMBOL,
                kind=AssetKind.CASH,
                quantity=1.0,
                market_value=cash,
                cost_basis=cash,
            )
        )

    holdings = apply_weights(holdings, total_value)
    holdings.sort(key=lambda h: h.market_value, reverse=True)

    return ValuationSnapshot(
        as_of_date=as_of,
        account_id=account_id,
        totals=SnapshotTotals(
            cash_value=cash_value,
            market_value=market_value,
            total_value=total_value,
            realized_pnl=replay.total_realized_pnl,
            unrealized_pnl=unrealized_pnl,
        ),
        holdings=holdings,
        warnings=warnings,
    )


class ValuationEngine:
    """Loads the ledger through *transactions*, replays and prices it."""

    def __init__(
        self,
        transactions: TransactionSource,
        prices: PriceSource,
        instruments: InstrumentSource,
        cache: SnapshotCache | None = None,
    ) -> None:
        self.transactions = transactions
        self.prices = prices
        self.instruments = instruments
        self.cache = cache

    def get_snapshot(self, account_id: str | None = None, as_of: date | None = None) -> ValuationSnapshot:
        as_of = as_of or utc_today()
        if self.cache is not None:
            cached = self.cache.get(account_id, as_of)
            if cached is not None:
                return cached

        ledger = self.transactions.list_transactions(account_id, as_of)
        replay = replay_transactions(sort_for_replay(ledger))
        snapshot = build_valuation_snapshot(replay, as_of, self.prices, self.instruments, account_id=account_id)
        log.debug(
            "snapshot_built",
            account_id=account_id,
            as_of=as_of.isoformat(),
            holdings=len(snapshot.holdings),
            warnings=len(snapshot.warnings),
            total_value=snapshot.totals.total_value,
        )

        if self.cache is not None:
            self.cache.set(account_id, as_of, snapshot)
        return snapshot
