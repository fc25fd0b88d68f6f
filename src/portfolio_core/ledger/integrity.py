"""History integrity check for inserting or replacing a transaction."""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from portfolio_core.ledger.ordering import sort_for_replay
from portfolio_core.ledger.replay import replay_transactions
from portfolio_core.models.transaction import Transaction

log = structlog.get_logger("ledger_integrity")


def assert_history_consistent(
    history: Iterable[Transaction],
    candidate: Transaction | None = None,
    *,
    replaces_id: str | None = None,
) -> None:
    """Replay the full trade history of one position with *candidate* applied.

    *history* holds the stored BUY/SELL rows of a single (account, instrument)
    key.  The row whose id is *replaces_id* is dropped first, then *candidate*
    (if any) is added, and every intermediate state is checked by replaying in
    canonical order from the very first trade.

    Raises:
        InsufficientLotsError: some SELL would exceed the lots open at that
            point in history.
    """
    rows = [tx for tx in history if tx.id != replaces_id]
    if candidate is not None:
        rows.append(candidate)
    trades = [tx for tx in rows if tx.type.is_trade and tx.instrument_id]
    replay_transactions(sort_for_replay(trades))
    log.debug("history_consistent", trades=len(trades), replaces_id=replaces_id)
