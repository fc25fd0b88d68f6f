"""Collaborator interfaces the computation core reads through.

Storage, market data and metadata live behind these so the engines stay pure
with respect to their inputs and tests can substitute deterministic stubs.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from datetime import date

from portfolio_core.models.market import ConstituentSet, InstrumentInfo, PriceQuote
from portfolio_core.models.transaction import Transaction


class TransactionSource(ABC):
    @abstractmethod
    def list_transactions(self, account_id: str | None, until: date) -> list[Transaction]:
        """All transactions with trade date <= *until*, optionally one account.

        Order is unspecified; callers sort with ``sort_for_replay``.
        """

    @abstractmethod
    def first_trade_date(self, account_id: str | None) -> date | None:
        """Trade date of the earliest transaction in scope, or None."""


class PriceSource(ABC):
    @abstractmethod
    def latest_close(self, instrument_id: str, as_of: date) -> PriceQuote | None:
        """Latest close dated on or before *as_of*, or None."""


class ConstituentSource(ABC):
    @abstractmethod
    def latest_constituents(self, etf_instrument_id: str, as_of: date) -> ConstituentSet | None:
        """Most recent weight set dated on or before *as_of*, or None."""


class InstrumentSource(ABC):
    @abstractmethod
    def get_by_ids(self, instrument_ids: Iterable[str]) -> dict[str, InstrumentInfo]:
        """Instruments keyed by id; unknown ids are omitted."""

    @abstractmethod
    def get_by_symbols(self, symbols: Iterable[str]) -> dict[str, InstrumentInfo]:
        """Instruments keyed by upper-cased symbol; unknown symbols are omitted."""
