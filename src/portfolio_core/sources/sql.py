"""SQLAlchemy-backed implementations of the collaborator interfaces."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date

from sqlalchemy import desc, func, select
from sqlalchemy.orm import Session

from portfolio_core.dates import as_utc
from portfolio_core.db.tables.ledger import InstrumentRow, TransactionRow
from portfolio_core.db.tables.market_data import EtfConstituentRow, PricePointRow
from portfolio_core.models.market import ConstituentSet, InstrumentInfo, PriceQuote
from portfolio_core.models.transaction import Transaction, TransactionType
from portfolio_core.sources.base import (
    ConstituentSource,
    InstrumentSource,
    PriceSource,
    TransactionSource,
)


def transaction_from_row(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        account_id=row.account_id,
        instrument_id=row.instrument_id,
        type=TransactionType(row.type),
        trade_date=row.trade_date,
        settle_date=row.settle_date,
        quantity=None if row.quantity is None else float(row.quantity),
        price=None if row.price is None else float(row.price),
        amount=None if row.amount is None else float(row.amount),
        fee_amount=float(row.fee_amount or 0),
        created_at=as_utc(row.created_at),
        external_ref=row.external_ref,
        notes=row.notes,
    )


def _metadata_str(metadata: dict | None, key: str) -> str | None:
    """Trimmed string value of *key*, None when absent, blank or not a string."""
    if not isinstance(metadata, dict):
        return None
    raw = metadata.get(key)
    if not isinstance(raw, str):
        return None
    raw = raw.strip()
    return raw or None


def instrument_from_row(row: InstrumentRow) -> InstrumentInfo:
    return InstrumentInfo(
        id=row.id,
        symbol=row.symbol.upper(),
        kind=row.kind,
        currency=row.currency or None,
        country=_metadata_str(row.metadata_, "country"),
        sector=_metadata_str(row.metadata_, "sector"),
        industry=_metadata_str(row.metadata_, "industry"),
    )


class SqlTransactionSource(TransactionSource):
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_transactions(self, account_id: str | None, until: date) -> list[Transaction]:
        stmt = select(TransactionRow).where(TransactionRow.trade_date <= until)
        if account_id is not None:
            stmt = stmt.where(TransactionRow.account_id == account_id)
        rows = self.session.execute(stmt).scalars().all()
        return [transaction_from_row(r) for r in rows]

    def first_trade_date(self, account_id: str | None) -> date | None:
        stmt = select(func.min(TransactionRow.trade_date))
        if account_id is not None:
            stmt = stmt.where(TransactionRow.account_id == account_id)
        return self.session.execute(stmt).scalar()


class SqlPriceSource(PriceSource):
    def __init__(self, session: Session) -> None:
        self.session = session

    def latest_close(self, instrument_id: str, as_of: date) -> PriceQuote | None:
        row = (
            self.session.query(PricePointRow)
            .filter(PricePointRow.instrument_id == instrument_id, PricePointRow.date <= as_of)
            .order_by(desc(PricePointRow.date), desc(PricePointRow.fetched_at), desc(PricePointRow.id))
            .limit(1)
            .first()
        )
        if row is None:
            return None
        return PriceQuote(instrument_id=instrument_id, date=row.date, close=float(row.close))


class SqlConstituentSource(ConstituentSource):
    def __init__(self, session: Session) -> None:
        self.session = session

    def latest_constituents(self, etf_instrument_id: str, as_of: date) -> ConstituentSet | None:
        dataset_date = self.session.execute(
            select(func.max(EtfConstituentRow.as_of_date)).where(
                EtfConstituentRow.etf_instrument_id == etf_instrument_id,
                EtfConstituentRow.as_of_date <= as_of,
            )
        ).scalar()
        if dataset_date is None:
            return None
        rows = (
            self.session.query(EtfConstituentRow)
            .filter(
                EtfConstituentRow.etf_instrument_id == etf_instrument_id,
                EtfConstituentRow.as_of_date == dataset_date,
            )
            .order_by(EtfConstituentRow.constituent_symbol)
            .all()
        )
        return ConstituentSet(
            etf_instrument_id=etf_instrument_id,
            as_of_date=dataset_date,
            weights={r.constituent_symbol.upper(): float(r.weight) for r in rows},
        )


class SqlInstrumentSource(InstrumentSource):
    def __init__(self, session: Session) -> None:
        self.session = session

    def get_by_ids(self, instrument_ids: Iterable[str]) -> dict[str, InstrumentInfo]:
        ids = sorted(set(instrument_ids))
        if not ids:
            return {}
        rows = self.session.query(InstrumentRow).filter(InstrumentRow.id.in_(ids)).all()
        return {r.id: instrument_from_row(r) for r in rows}

    def get_by_symbols(self, symbols: Iterable[str]) -> dict[str, InstrumentInfo]:
        wanted = sorted({s.upper() for s in symbols})
        if not wanted:
            return {}
        rows = (
            self.session.query(InstrumentRow)
            .filter(func.upper(InstrumentRow.symbol).in_(wanted))
            .order_by(desc(InstrumentRow.is_active), InstrumentRow.created_at, InstrumentRow.id)
            .all()
        )
        found: dict[str, InstrumentInfo] = {}
        for r in rows:
            # active first, then oldest wins
            found.setdefault(r.symbol.upper(), instrument_from_row(r))
        return found
