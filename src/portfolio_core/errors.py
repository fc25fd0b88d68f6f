"""Exception hierarchy for the portfolio core.

Validation errors are the caller's to fix; replay integrity errors mean the
transaction log itself is impossible; concurrency conflicts are reported, never
retried here.  Failures raised by collaborators (price providers, databases)
are not wrapped.
"""

from __future__ import annotations


class PortfolioError(Exception):
    """Base class for every error raised by portfolio_core."""


class DomainValidationError(PortfolioError, ValueError):
    """Caller input is invalid (bad period, unknown account, bad filter...)."""


class MissingFieldError(DomainValidationError):
    """A transaction lacks a field its type requires."""

    def __init__(self, tx_type: str, fields: str) -> None:
        super().__init__(f"{tx_type} requires {fields}")
        self.tx_type = tx_type
        self.fields = fields


class InvalidPeriodError(DomainValidationError):
    """Performance period bounds are missing or out of order."""


class InsufficientLotsError(PortfolioError):
    """A SELL exceeds the open lot quantity at its point in replay order."""

    def __init__(
        self,
        account_id: str,
        instrument_id: str,
        transaction_id: str | None = None,
        shortfall: float | None = None,
    ) -> None:
        msg = f"Insufficient lots for SELL on {account_id}:{instrument_id}"
        if transaction_id is not None:
            msg += f" (transaction {transaction_id})"
        super().__init__(msg)
        self.account_id = account_id
        self.instrument_id = instrument_id
        self.transaction_id = transaction_id
        self.shortfall = shortfall


class ConcurrencyConflictError(PortfolioError):
    """Another process holds the refresh lock."""


class MarketDataError(PortfolioError):
    """A market data provider refused or failed a request."""


class JobStateError(PortfolioError):
    """A refresh job was finished twice or does not exist."""
