"""Canonical replay order for ledger transactions."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from typing import Protocol, TypeVar

from portfolio_core.dates import as_utc


class Sortable(Protocol):
    id: str
    trade_date: date
    created_at: datetime


T = TypeVar("T", bound=Sortable)


def replay_key(tx: Sortable) -> tuple[date, datetime, str]:
    """(trade date, creation time, id): a strict total order."""
    return (tx.trade_date, as_utc(tx.created_at), str(tx.id))


def sort_for_replay(transactions: Iterable[T]) -> list[T]:
    """Return a new list in replay order; the input is left untouched."""
    return sorted(transactions, key=replay_key)
