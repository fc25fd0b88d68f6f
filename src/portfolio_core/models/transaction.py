"""Ledger transaction models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    FEE = "FEE"
    DEPOSIT = "DEPOSIT"
    WITHDRAWAL = "WITHDRAWAL"

    @property
    def is_trade(self) -> bool:
        return self in (TransactionType.BUY, TransactionType.SELL)


class Transaction(BaseModel):
    """One immutable ledger event as stored.

    ``amount`` is derived (quantity * price) for trades and supplied for every
    other type.  Field rules are enforced on the way in by
    :class:`TransactionDraft`; replay re-checks the fields it needs.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    account_id: str
    instrument_id: str | None = None
    type: TransactionType
    trade_date: date
    settle_date: date | None = None
    quantity: float | None = None
    price: float | None = None
    amount: float | None = None
    fee_amount: float = Field(default=0.0, ge=0.0)
    created_at: datetime
    external_ref: str | None = None
    notes: str | None = None


class TransactionDraft(BaseModel):
    """Create/replace payload for a transaction, validated per type."""

    account_id: str = Field(min_length=1)
    instrument_id: str | None = Field(default=None, min_length=1)
    type: TransactionType
    trade_date: date
    settle_date: date | None = None
    quantity: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    price: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    amount: float | None = Field(default=None, gt=0, allow_inf_nan=False)
    fee_amount: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    notes: str | None = Field(default=None, max_length=500)
    external_ref: str | None = Field(default=None, max_length=120)

    @model_validator(mode="after")
    def _check_type_fields(self) -> TransactionDraft:
        problems: list[str] = []
        if self.settle_date is not None and self.settle_date < self.trade_date:
            problems.append("settle_date must be on or after trade_date")

        name = self.type.value
        if self.type.is_trade:
            if not self.instrument_id:
                problems.append(f"{name} requires instrument_id")
            if self.quantity is None:
                problems.append(f"{name} requires quantity")
            if self.price is None:
                problems.append(f"{name} requires price")
            if self.amount is not None:
                problems.append(f"{name} does not accept amount")
        else:
            if self.amount is None:
                problems.append(f"{name} requires amount")
            if self.quantity is not None:
                problems.append(f"{name} does not accept quantity")
            if self.price is not None:
                problems.append(f"{name} does not accept price")
            if self.instrument_id:
                problems.append(f"{name} does not accept instrument_id")

        if problems:
            raise ValueError("; ".join(problems))
        return self

    def resolved_amount(self) -> float:
        """Stored amount: supplied for cash events, quantity * price for trades."""
        if self.amount is not None:
            return self.amount
        return self.quantity * self.price
