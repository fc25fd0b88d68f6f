"""Import all table modules so Base.metadata knows about them."""

from portfolio_core.db.tables.ledger import AccountRow, InstrumentRow, TransactionRow
from portfolio_core.db.tables.market_data import EtfConstituentRow, PricePointRow
from portfolio_core.db.tables.valuation import DailyValuationRow, RefreshJobRow, WarningEventRow

__all__ = [
    "AccountRow",
    "DailyValuationRow",
    "EtfConstituentRow",
    "InstrumentRow",
    "PricePointRow",
    "RefreshJobRow",
    "TransactionRow",
    "WarningEventRow",
]
