"""Transaction write path."""

from portfolio_core.transactions.service import TransactionService

__all__ = ["TransactionService"]
