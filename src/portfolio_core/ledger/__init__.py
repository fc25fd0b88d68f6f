"""Ledger arithmetic, replay ordering and FIFO position replay."""

from portfolio_core.ledger.arithmetic import cash_delta, transaction_cash_delta
from portfolio_core.ledger.integrity import assert_history_consistent
from portfolio_core.ledger.ordering import replay_key, sort_for_replay
from portfolio_core.ledger.replay import (
    EPSILON,
    Lot,
    PositionState,
    ReplayOutput,
    replay_transactions,
)

__all__ = [
    "EPSILON",
    "Lot",
    "PositionState",
    "ReplayOutput",
    "assert_history_consistent",
    "cash_delta",
    "replay_key",
    "replay_transactions",
    "sort_for_replay",
    "transaction_cash_delta",
]
