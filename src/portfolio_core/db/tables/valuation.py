"""SQLAlchemy ORM models for the portfolio_valuation schema."""

import datetime as dt

from sqlalchemy import BigInteger, Boolean, Date, ForeignKey, Index, Numeric, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from portfolio_core.db.base import Base
from portfolio_core.db.tables.ledger import SCHEMA as LEDGER_SCHEMA, utcnow

SCHEMA = "portfolio_valuation"


class DailyValuationRow(Base):
    __tablename__ = "daily_valuations"
    __table_args__ = (
        Index("ix_daily_valuations_date_account", "date", "account_id"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    # NULL account_id is the whole-portfolio row
    account_id: Mapped[str | None] = mapped_column(
        Text,
        ForeignKey(f"{LEDGER_SCHEMA}.accounts.id"),
        nullable=True,
    )
    cash_value: Mapped[float] = mapped_column(Numeric(asdecimal=False), nullable=False)
    market_value: Mapped[float] = mapped_column(Numeric(asdecimal=False), nullable=False)
    total_value: Mapped[float] = mapped_column(Numeric(asdecimal=False), nullable=False)
    completeness_flag: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class WarningEventRow(Base):
    __tablename__ = "warning_events"
    __table_args__ = (
        Index("ix_warning_events_active", "mode", "resolved_at"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    fingerprint: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    first_seen_at: Mapped[dt.date] = mapped_column(Date, nullable=False)
    last_seen_at: Mapped[dt.date] = mapped_column(Date, nullable=False)
    resolved_at: Mapped[dt.date | None] = mapped_column(Date, nullable=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    severity: Mapped[str] = mapped_column(Text, nullable=False)
    mode: Mapped[str] = mapped_column(Text, nullable=False)
    account_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    instrument_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class RefreshJobRow(Base):
    __tablename__ = "refresh_jobs"
    __table_args__ = (
        Index("ix_refresh_jobs_started_at", "started_at"),
        {"schema": SCHEMA},
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    trigger: Mapped[str] = mapped_column(Text, nullable=False)
    started_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    input_json: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    result_json: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
