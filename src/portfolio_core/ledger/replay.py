"""FIFO position replay: folds an ordered ledger into cash, lots and P&L.

Input must already be in replay order (see :mod:`portfolio_core.ledger.ordering`)
and filtered to the as-of date / account scope.  Lots live only for the
duration of one call.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from portfolio_core.errors import InsufficientLotsError
from portfolio_core.ledger.arithmetic import transaction_cash_delta
from portfolio_core.models.transaction import Transaction, TransactionType

log = structlog.get_logger("replay")

# Quantities at or below this are treated as fully consumed
EPSILON = 1e-9

DIVIDEND_INCOME = "__dividend_income__"
FEE_EXPENSE = "__fee_expense__"


@dataclass
class Lot:
    """An open tax lot.  ``unit_cost`` includes the acquisition fee."""

    quantity: float
    unit_cost: float


@dataclass(frozen=True)
class PositionState:
    account_id: str
    instrument_id: str
    quantity: float
    cost_basis: float
    realized_pnl: float


@dataclass
class ReplayOutput:
    cash_by_account: dict[str, float] = field(default_factory=dict)
    positions: list[PositionState] = field(default_factory=list)
    total_realized_pnl: float = 0.0
    # dividends received minus standalone fees, per account
    income_by_account: dict[str, float] = field(default_factory=dict)


def _consume_lots(lots: list[Lot], sell_quantity: float, tx: Transaction) -> float:
    """Remove *sell_quantity* from the front of *lots*; return the cost removed."""
    remaining = sell_quantity
    removed_cost = 0.0
    while remaining > EPSILON:
        if not lots:
            log.debug(
                "replay_insufficient_lots",
                account_id=tx.account_id,
                instrument_id=tx.instrument_id,
                transaction_id=tx.id,
                shortfall=remaining,
            )
            raise InsufficientLotsError(
                tx.account_id,
                tx.instrument_id,
                transaction_id=tx.id,
                shortfall=remaining,
            )
        first = lots[0]
        matched = min(first.quantity, remaining)
        removed_cost += matched * first.unit_cost
        first.quantity -= matched
        remaining -= matched
        if first.quantity <= EPSILON:
            lots.pop(0)
    return removed_cost


def replay_transactions(transactions: Iterable[Transaction]) -> ReplayOutput:
    """Replay *transactions* in the given order.

    Raises:
        InsufficientLotsError: a SELL exceeds the lots open at that point.
        MissingFieldError: a transaction lacks a field its type needs.
    """
    cash_by_account: dict[str, float] = {}
    lots_by_key: dict[tuple[str, str], list[Lot]] = {}
    realized_by_key: dict[tuple[str, str], float] = {}
    count = 0

    for tx in transactions:
        count += 1
        delta = transaction_cash_delta(tx)
        cash_by_account[tx.account_id] = cash_by_account.get(tx.account_id, 0.0) + delta

        if not tx.instrument_id or not tx.type.is_trade:
            if tx.type is TransactionType.DIVIDEND:
                key = (tx.account_id, DIVIDEND_INCOME)
                realized_by_key[key] = realized_by_key.get(key, 0.0) + tx.amount
            elif tx.type is TransactionType.FEE:
                key = (tx.account_id, FEE_EXPENSE)
                realized_by_key[key] = realized_by_key.get(key, 0.0) - tx.amount
            continue

        key = (tx.account_id, tx.instrument_id)
        lots = lots_by_key.setdefault(key, [])
        quantity = tx.quantity or 0.0
        price = tx.price or 0.0

        if tx.type is TransactionType.BUY:
            total_cost = quantity * price + tx.fee_amount
            unit_cost = 0.0 if quantity == 0 else total_cost / quantity
            lots.append(Lot(quantity=quantity, unit_cost=unit_cost))
            continue

        removed_cost = _consume_lots(lots, quantity, tx)
        proceeds = quantity * price - tx.fee_amount
        realized_by_key[key] = realized_by_key.get(key, 0.0) + (proceeds - removed_cost)

    positions: list[PositionState] = []
    for (account_id, instrument_id), lots in lots_by_key.items():
        quantity = sum(lot.quantity for lot in lots)
        if quantity <= EPSILON:
            continue
        positions.append(
            PositionState(
                account_id=account_id,
                instrument_id=instrument_id,
                quantity=quantity,
                cost_basis=sum(lot.quantity * lot.unit_cost for lot in lots),
                realized_pnl=realized_by_key.get((account_id, instrument_id), 0.0),
            )
        )

    income_by_account: dict[str, float] = {}
    for (account_id, bucket), value in realized_by_key.items():
        if bucket in (DIVIDEND_INCOME, FEE_EXPENSE):
            income_by_account[account_id] = income_by_account.get(account_id, 0.0) + value

    log.debug("replay_completed", transactions=count, open_positions=len(positions))
    return ReplayOutput(
        cash_by_account=cash_by_account,
        positions=positions,
        total_realized_pnl=sum(realized_by_key.values(), 0.0),
        income_by_account=income_by_account,
    )
