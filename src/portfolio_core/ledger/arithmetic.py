"""Signed cash effect of a single ledger transaction."""

from __future__ import annotations

from typing import assert_never

from portfolio_core.errors import MissingFieldError
from portfolio_core.models.transaction import TransactionType


def cash_delta(
    tx_type: TransactionType,
    *,
    quantity: float | None = None,
    price: float | None = None,
    amount: float | None = None,
    fee_amount: float | None = None,
) -> float:
    """Return the change to the account's cash balance for one transaction.

    BUY pays ``quantity * price + fee``; SELL receives ``quantity * price - fee``.
    DIVIDEND and DEPOSIT add ``amount``; FEE and WITHDRAWAL subtract it.

    Raises:
        MissingFieldError: the fields the type needs are absent.
    """
    fee = fee_amount or 0.0
    match tx_type:
        case TransactionType.BUY:
            if quantity is None or price is None:
                raise MissingFieldError("BUY", "quantity and price")
            return -(quantity * price + fee)
        case TransactionType.SELL:
            if quantity is None or price is None:
                raise MissingFieldError("SELL", "quantity and price")
            return quantity * price - fee
        case TransactionType.DIVIDEND | TransactionType.DEPOSIT:
            if amount is None:
                raise MissingFieldError(tx_type.value, "amount")
            return amount
        case TransactionType.FEE | TransactionType.WITHDRAWAL:
            if amount is None:
                raise MissingFieldError(tx_type.value, "amount")
            return -amount
        case _:
            assert_never(tx_type)


def transaction_cash_delta(tx) -> float:
    """:func:`cash_delta` for any object with the transaction fields."""
    return cash_delta(
        tx.type,
        quantity=tx.quantity,
        price=tx.price,
        amount=tx.amount,
        fee_amount=tx.fee_amount,
    )
