"""Collaborator interfaces and their SQL implementations."""

from portfolio_core.sources.base import (
    ConstituentSource,
    InstrumentSource,
    PriceSource,
    TransactionSource,
)
from portfolio_core.sources.sql import (
    SqlConstituentSource,
    SqlInstrumentSource,
    SqlPriceSource,
    SqlTransactionSource,
    instrument_from_row,
    transaction_from_row,
)

__all__ = [
    "ConstituentSource",
    "InstrumentSource",
    "PriceSource",
    "SqlConstituentSource",
    "SqlInstrumentSource",
    "SqlPriceSource",
    "SqlTransactionSource",
    "TransactionSource",
    "instrument_from_row",
    "transaction_from_row",
]
