"""Create ledger, market data and valuation tables.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Schemas are created by env.py before migrations run.

    # --- portfolio_ledger ---
    op.create_table(
        "accounts",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("name", sa.Text, nullable=False, unique=True),
        sa.Column("base_currency", sa.Text, nullable=False, server_default="USD"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        schema="portfolio_ledger",
    )

    op.create_table(
        "instruments",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("symbol", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("kind", sa.Text, nullable=False),
        sa.Column("currency", sa.Text, nullable=False, server_default="USD"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("symbol", "kind"),
        schema="portfolio_ledger",
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Text, primary_key=True),
        sa.Column("account_id", sa.Text, sa.ForeignKey("portfolio_ledger.accounts.id"), nullable=False),
        sa.Column("instrument_id", sa.Text, sa.ForeignKey("portfolio_ledger.instruments.id"), nullable=True),
        sa.Column("type", sa.Text, nullable=False),
        sa.Column("trade_date", sa.Date, nullable=False),
        sa.Column("settle_date", sa.Date, nullable=True),
        sa.Column("quantity", sa.Numeric, nullable=True),
        sa.Column("price", sa.Numeric, nullable=True),
        sa.Column("amount", sa.Numeric, nullable=False),
        sa.Column("fee_amount", sa.Numeric, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("external_ref", sa.Text, nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        schema="portfolio_ledger",
    )
    op.create_index(
        "ix_transactions_account_trade_date",
        "transactions",
        ["account_id", "trade_date"],
        schema="portfolio_ledger",
    )

    # --- portfolio_market_data ---
    op.create_table(
        "price_points",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("instrument_id", sa.Text, sa.ForeignKey("portfolio_ledger.instruments.id"), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("close", sa.Numeric, nullable=False),
        sa.Column("source", sa.Text, nullable=False),
        sa.Column("fetched_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("instrument_id", "date", "source"),
        schema="portfolio_market_data",
    )

    op.create_table(
        "etf_constituents",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("etf_instrument_id", sa.Text, sa.ForeignKey("portfolio_ledger.instruments.id"), nullable=False),
        sa.Column("constituent_symbol", sa.Text, nullable=False),
        sa.Column("weight", sa.Numeric, nullable=False),
        sa.Column("as_of_date", sa.Date, nullable=False),
        sa.Column("source", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("etf_instrument_id", "constituent_symbol", "as_of_date"),
        schema="portfolio_market_data",
    )

    # --- portfolio_valuation ---
    op.create_table(
        "daily_valuations",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("account_id", sa.Text, sa.ForeignKey("portfolio_ledger.accounts.id"), nullable=True),
        sa.Column("cash_value", sa.Numeric, nullable=False),
        sa.Column("market_value", sa.Numeric, nullable=False),
        sa.Column("total_value", sa.Numeric, nullable=False),
        sa.Column("completeness_flag", sa.Boolean, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        schema="portfolio_valuation",
    )
    op.create_index(
        "ix_daily_valuations_date_account",
        "daily_valuations",
        ["date", "account_id"],
        schema="portfolio_valuation",
    )

    op.create_table(
        "warning_events",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("fingerprint", sa.Text, nullable=False, unique=True),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("first_seen_at", sa.Date, nullable=False),
        sa.Column("last_seen_at", sa.Date, nullable=False),
        sa.Column("resolved_at", sa.Date, nullable=True),
        sa.Column("code", sa.Text, nullable=False),
        sa.Column("severity", sa.Text, nullable=False),
        sa.Column("mode", sa.Text, nullable=False),
        sa.Column("account_id", sa.Text, nullable=True),
        sa.Column("instrument_id", sa.Text, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        schema="portfolio_valuation",
    )
    op.create_index(
        "ix_warning_events_active",
        "warning_events",
        ["mode", "resolved_at"],
        schema="portfolio_valuation",
    )

    op.create_table(
        "refresh_jobs",
        sa.Column("id", sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column("status", sa.Text, nullable=False),
        sa.Column("trigger", sa.Text, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("input_json", postgresql.JSONB, nullable=True),
        sa.Column("result_json", postgresql.JSONB, nullable=True),
        sa.Column("error_message", sa.Text, nullable=True),
        schema="portfolio_valuation",
    )
    op.create_index(
        "ix_refresh_jobs_started_at",
        "refresh_jobs",
        ["started_at"],
        schema="portfolio_valuation",
    )


def downgrade() -> None:
    op.drop_table("refresh_jobs", schema="portfolio_valuation")
    op.drop_table("warning_events", schema="portfolio_valuation")
    op.drop_table("daily_valuations", schema="portfolio_valuation")
    op.drop_table("etf_constituents", schema="portfolio_market_data")
    op.drop_table("price_points", schema="portfolio_market_data")
    op.drop_table("transactions", schema="portfolio_ledger")
    op.drop_table("instruments", schema="portfolio_ledger")
    op.drop_table("accounts", schema="portfolio_ledger")
