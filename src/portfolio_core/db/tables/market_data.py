"""SQLAlchemy ORM models for the portfolio_market_data schema."""

import datetime as dt

from sqlalchemy import BigInteger, Date, ForeignKey, Numeric, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from portfolio_core.db.base import Base
from portfolio_core.db.tables.ledger import SCHEMA as LEDGER_SCHEMA, utcnow

SCHEMA = "portfolio_market_data"


class PricePointRow(Base):
    __tablename__ = "price_points"
    __table_args__ = (
        UniqueConstraint("instrument_id", "date", "source"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    instrument_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey(f"{LEDGER_SCHEMA}.instruments.id"),
        nullable=False,
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    close: Mapped[float] = mapped_column(Numeric(asdecimal=False), nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    fetched_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class EtfConstituentRow(Base):
    __tablename__ = "etf_constituents"
    __table_args__ = (
        UniqueConstraint("etf_instrument_id", "constituent_symbol", "as_of_date"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    etf_instrument_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey(f"{LEDGER_SCHEMA}.instruments.id"),
        nullable=False,
    )
    constituent_symbol: Mapped[str] = mapped_column(Text, nullable=False)
    weight: Mapped[float] = mapped_column(Numeric(asdecimal=False), nullable=False)
    as_of_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    source: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
